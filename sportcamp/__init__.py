"""Sportcamp - multi-tenant sports club management backend.

Core concepts:
- A *club* belongs to one sport and is the tenant boundary.
- A *membership* assigns a user a role (admin|coach|student) inside one club.
- The platform operator is a global *superadmin* and bypasses club scoping.

Every request resolves an access context first, see `sportcamp.access`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
