"""Admin hierarchy service for Affilimart application."""

import logging
from typing import Dict, Any, Optional, List

import requests

from affilimart import config
from affilimart.errors import (
    AuthError,
    ConflictError,
    UpstreamError,
    ValidationError,
    raise_for_store_status,
)
from affilimart.models.admin import Admin, AdminRole
from affilimart.models.base import now_iso
from affilimart.services.auth_service import AuthService
from affilimart.services.region_directory import RegionDirectory, can_access_region

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

# Lower rank is higher in the hierarchy
RANKS = {
    AdminRole.SUPER_ADMIN: 0,
    AdminRole.NSA: 1,
    AdminRole.SSA: 2,
    AdminRole.DSA: 3,
}

CREATABLE_ROLES = {
    AdminRole.SUPER_ADMIN: (AdminRole.NSA, AdminRole.SSA, AdminRole.DSA),
    AdminRole.NSA: (AdminRole.SSA, AdminRole.DSA),
    AdminRole.SSA: (AdminRole.DSA,),
}

REQUIRED_REGION = {
    AdminRole.NSA: ("country",),
    AdminRole.SSA: ("country", "state"),
    AdminRole.DSA: ("country", "state", "district"),
}


def _public(admin: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in admin.items() if k != "password"}


def _within_territory(actor: Admin, target_role: AdminRole, district: Optional[str],
                      state: Optional[str], country: Optional[str]) -> bool:
    return all(
        can_access_region(actor, region_type, district, state, country)
        for region_type in REQUIRED_REGION.get(target_role, ())
    )


class AdminService:
    """Service for managing the regional admin hierarchy."""

    @staticmethod
    def _all_admins() -> List[Dict[str, Any]]:
        try:
            response = requests.get(f"{BASE_URL}/admins")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to list admins: {str(e)}")
        if response.status_code == 404:
            return []
        raise_for_store_status(response, "Admins")
        return response.json()

    @staticmethod
    def _insert(admin: Admin) -> Dict[str, Any]:
        try:
            response = requests.post(f"{BASE_URL}/admins", json=admin.to_dict())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to create admin: {str(e)}")
        raise_for_store_status(response, "Admin")
        return _public(response.json())

    @staticmethod
    def bootstrap_super_admin(name: str, email: str, phone: str, password: str) -> Dict[str, Any]:
        """
        Create the platform's super admin.

        Only allowed while no super admin exists.

        Raises:
            ConflictError: If a super admin already exists
        """
        if any(a.get("role") == AdminRole.SUPER_ADMIN.value for a in AdminService._all_admins()):
            raise ConflictError("A super admin already exists")

        email = (email or "").strip().lower()
        phone = (phone or "").strip()
        AuthService._validate_credentials(email, phone, password)

        admin = Admin(
            name=name,
            email=email,
            phone=phone,
            password=AuthService._hash_password(password),
            role=AdminRole.SUPER_ADMIN,
        )
        logger.info(f"Bootstrapping super admin {email}")
        return AdminService._insert(admin)

    @staticmethod
    def create_admin(token: str, name: str, email: str, phone: str, password: str, role: str,
                     district: Optional[str] = None, state: Optional[str] = None,
                     country: Optional[str] = None, commission_rate: float = 0.0) -> Dict[str, Any]:
        """
        Create a regional admin below the caller.

        The super admin may create NSAs, SSAs and DSAs anywhere. An NSA may
        create SSAs and DSAs in its country and an SSA may create DSAs in its
        state.

        Args:
            token: JWT token for authentication
            name: Admin's name
            email: Login email
            phone: Phone number
            password: Plain text password
            role: nsa, ssa or dsa
            district: Required for DSAs
            state: Required for SSAs and DSAs
            country: Required for every regional admin
            commission_rate: Informational commission rate

        Returns:
            Dict: The created admin without its password

        Raises:
            AuthError: If the caller may not create this admin
            ValidationError: If region fields are missing
            ConflictError: If the email or phone is taken
        """
        creator = AuthService.get_current_admin(
            token, [AdminRole.SUPER_ADMIN.value, AdminRole.NSA.value, AdminRole.SSA.value]
        )

        try:
            new_role = AdminRole(role)
        except ValueError:
            raise ValidationError(f"Unknown admin role: {role}")

        if new_role not in CREATABLE_ROLES.get(creator.role, ()):
            raise AuthError(f"A {creator.role.value} cannot create a {new_role.value}", status_code=403)

        region = {"district": district, "state": state, "country": country}
        missing = [key for key in REQUIRED_REGION[new_role] if not region[key]]
        if missing:
            raise ValidationError(f"A {new_role.value} requires {', '.join(missing)}")

        if not _within_territory(creator, new_role, district, state, country):
            raise AuthError("Access to this region is denied", status_code=403)

        if not name:
            raise ValidationError("Name is required")
        email = (email or "").strip().lower()
        phone = (phone or "").strip()
        AuthService._validate_credentials(email, phone, password)
        try:
            AuthService._ensure_unique("admins", email, phone)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to create admin: {str(e)}")

        admin = Admin(
            name=name.strip(),
            email=email,
            phone=phone,
            password=AuthService._hash_password(password),
            role=new_role,
            district=district if new_role == AdminRole.DSA else None,
            state=state if new_role in (AdminRole.SSA, AdminRole.DSA) else None,
            country=country,
            commission_rate=float(commission_rate),
            created_by=creator.id,
        )

        logger.info(f"Admin {creator.id} created {new_role.value} {email}")
        return AdminService._insert(admin)

    @staticmethod
    def deactivate_admin(token: str, admin_id: str) -> Dict[str, Any]:
        """
        Deactivate an admin below the caller in the caller's territory.

        Deactivated admins can no longer log in and are skipped when regions
        are resolved.
        """
        actor = AuthService.get_current_admin(token)
        try:
            response = requests.get(f"{BASE_URL}/admins/{admin_id}")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load admin: {str(e)}")
        raise_for_store_status(response, f"Admin with ID {admin_id}")
        target = Admin.from_dict(response.json())

        if RANKS[actor.role] >= RANKS[target.role]:
            raise AuthError("You can only deactivate admins below you", status_code=403)
        if not _within_territory(actor, target.role, target.district, target.state, target.country):
            raise AuthError("Access to this region is denied", status_code=403)

        target.is_active = False
        target.updated_at = now_iso()
        try:
            response = requests.put(f"{BASE_URL}/admins/{target.id}", json=target.to_dict())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to deactivate admin: {str(e)}")
        raise_for_store_status(response, "Admin")

        logger.info(f"Admin {actor.id} deactivated admin {target.id}")
        return _public(response.json())

    @staticmethod
    def list_admins(token: str, role: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the admins below the caller within its territory, oldest first."""
        actor = AuthService.get_current_admin(token)
        wanted = AdminRole(role) if role else None

        visible = []
        for data in AdminService._all_admins():
            admin = Admin.from_dict(data)
            if wanted and admin.role != wanted:
                continue
            if not actor.is_super_admin:
                if RANKS[actor.role] >= RANKS[admin.role]:
                    continue
                if not _within_territory(actor, admin.role, admin.district, admin.state, admin.country):
                    continue
            visible.append(_public(data))

        return sorted(visible, key=lambda a: (a.get("created_at") or "", a.get("id") or ""))

    @staticmethod
    def region_chain(district: Optional[str], state: Optional[str],
                     country: Optional[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        """Show which admins are responsible for a region."""
        admins = RegionDirectory.resolve_admin_chain(district, state, country)
        return {role: _public(admin) if admin else None for role, admin in admins.items()}
