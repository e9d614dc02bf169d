"""
Availability and slot-allocation engine.

Modules:
    intervals:     half-open time-of-day intervals and wire helpers
    schedule:      tri-state day schedules and their resolution
    slots:         fixed-step slot generation
    closures:      exceptional closure filtering
    conflicts:     overlap with existing appointments
    availability:  per-salon slot aggregation
    booking:       stylist selection and race-safe booking
    providers:     collaborator interfaces
    cache:         explicitly invalidated schedule cache
    sql_store / memory_store: provider implementations
"""
