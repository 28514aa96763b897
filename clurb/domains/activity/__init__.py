from clurb.domains.activity.entities import ActionType, ActivityEvent

__all__ = ["ActionType", "ActivityEvent"]
