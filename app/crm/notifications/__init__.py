"""
Record-created relay and notification log.

- events: wire payloads for the relay key and store-change events
- bus: per-context emitter + profile-wide broadcast hub
- relay / subscriber / toasts: announce a new record, pick it up in every context, show an acknowledgment
- log: durable newest-first list of notification messages
- context: Profile (shared store + hub) and the ExecutionContexts opened on it
"""
