"""
Custom permission classes for module/action based access control.

Decisions are delegated to :mod:`casework.services.authorization`; these
classes only adapt them to DRF.  Unauthenticated requests are left to
``IsAuthenticated`` so they surface as 401 rather than 403.
"""
from rest_framework.permissions import BasePermission

from .services.authorization import Principal


def principal_for(request) -> Principal:
    return Principal.from_user(getattr(request, "user", None))


def require(module: str, action: str, *alternatives):
    """Build a permission class granting ``module:action``.

    Extra ``(module, action)`` pairs in ``alternatives`` are accepted as
    well, e.g. ``require('profissionais', 'view', ('profissionais', 'edit'))``.
    """
    targets = ((module, action),) + tuple(alternatives)

    class ModulePermission(BasePermission):
        message = "Permissão insuficiente."

        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            principal = principal_for(request)
            if not principal.is_authenticated:
                return False
            return principal.can_any(targets)

    ModulePermission.__name__ = "Require_" + "_".join(f"{m}_{a}" for m, a in targets).replace("*", "any")
    return ModulePermission


class IsAdminActor(BasePermission):
    """Allow access only to administrative actors (role or admin scope)."""
    message = "Apenas administradores podem executar esta ação."
    code = "FORBIDDEN_NOT_ADMIN"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return principal_for(request).is_admin
