from clurb.domains.presence.entities import PresenceEntry, PresenceRoster

__all__ = ["PresenceEntry", "PresenceRoster"]
