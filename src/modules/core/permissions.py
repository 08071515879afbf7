"""Role checks layered on top of authentication.

The storefront knows two roles: customers (any authenticated user) and
staff (``user.is_staff``), who may list every order and move orders
through their lifecycle.
"""

from rest_framework.permissions import BasePermission


class IsStaffRole(BasePermission):
    message = "Staff role required."

    def has_permission(self, request, view) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)
