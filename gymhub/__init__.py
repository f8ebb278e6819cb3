"""
GymHub: membership back office for a gym.

This package contains:
- Subscription lifecycle engine and reports (`gymhub.domain`)
- Shared configuration and utilities (`gymhub.core`)
- Supabase integration (`gymhub.db`)
- Member, auth and contact flows (`gymhub.services`)
- Scheduled expiry sweep and reminders (`gymhub.worker`)
"""
