from frontdesk.security.auth import (
    Actor, ActorKind, StaffRole, create_access_token, get_current_actor,
)

__all__ = ['Actor', 'ActorKind', 'StaffRole', 'create_access_token', 'get_current_actor']
