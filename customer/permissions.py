from rest_framework import permissions


class IsAuthenticatedUser(permissions.BasePermission):
    """
    Permission for any authenticated cashier.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)


class IsStaffOrReadOnly(permissions.BasePermission):
    """
    Authenticated users may read; only staff may create or change templates.
    """
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_staff
