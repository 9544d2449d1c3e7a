"""
Scheduling Domain

Studio bookings, the conflict checker, the booking lifecycle and the smart
booking assistant.

Structure:
- overlap.py     # Half-open interval rule, date/time parsing
- conflicts.py   # Same-day conflict detection
- repository.py  # Booking and reschedule queries
- service.py     # Lifecycle: create, confirm, cancel, reschedule
- assistant.py   # Conflict report + AI suggestion with deterministic fallback
- router.py      # /studio endpoints
"""
