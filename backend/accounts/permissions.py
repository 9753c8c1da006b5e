from rest_framework import permissions

class IsAdmin(permissions.BasePermission):
    """
    Only admin users (or Django staff) may manage quotes and statuses.
    """
    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.is_staff or user.role == 'admin')

class IsAdminOrFinance(permissions.BasePermission):
    """
    Admin or finance users; used for exchange-rate refreshes and payments.
    """
    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.is_staff or user.role in ['admin', 'finance'])

class IsOwnerOrBackOffice(permissions.BasePermission):
    """
    Object-level check: customers only reach their own rows.
    """
    def has_object_permission(self, request, view, obj):
        user = request.user
        if getattr(user, 'is_back_office', False):
            return True
        owner_id = getattr(obj, 'customer_id', None) or getattr(obj, 'user_id', None)
        return owner_id is not None and owner_id == user.id
