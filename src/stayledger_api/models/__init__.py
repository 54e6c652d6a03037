"""API request/response models.

Domain models (Reservation, LoyaltyTransaction, ...) live in
stayledger.models and are returned as-is; this package only adds HTTP
request bodies and list wrappers.
"""
