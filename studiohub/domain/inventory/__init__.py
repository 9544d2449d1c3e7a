"""
Inventory Domain

Equipment items, date-range reservations against bookings, maintenance logs
and tag-based alternative matching.
"""
