"""
Error taxonomy for authentication and role-based access control.
"""


class RBACError(Exception):
    """Base class for every access-control failure."""


class AuthError(RBACError):
    """The identity provider rejected the supplied credentials."""


class NoAssignment(RBACError):
    """An authenticated identity has no active role assignment."""

    def __init__(self, identity_key: str):
        self.identity_key = identity_key
        super().__init__(f"No active role assignment for {identity_key}. Contact administrator.")


class Forbidden(RBACError):
    """A principal attempted an action outside its permission set."""

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(f"Permission required: {permission}")


class StoreError(RBACError):
    """The assignment store or identity provider could not be reached."""


class UnknownRole(RBACError):
    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Unknown role: {role_name}")


class InvalidAssignment(RBACError):
    pass


class AssignmentNotFound(RBACError):
    def __init__(self, identity_key: str):
        self.identity_key = identity_key
        super().__init__(f"No role assignment for {identity_key}")
