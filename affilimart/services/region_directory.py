"""Region directory: finds the regional admins responsible for an address."""

import logging
from typing import Dict, Any, Optional, List

import requests

from affilimart import config
from affilimart.errors import UpstreamError, raise_for_store_status
from affilimart.models.admin import Admin, AdminChain, AdminRole
from affilimart.models.user import Address

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

REGION_TYPES = ("country", "state", "district")


def select_responsible(candidates: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the one admin responsible among the matches for a region.

    Inactive admins are skipped. When several active admins cover the same
    region the earliest created wins, then the lowest id.
    """
    active = [admin for admin in candidates if admin.get("is_active", False)]
    if not active:
        return None
    return min(active, key=lambda admin: (admin.get("created_at") or "", admin.get("id") or ""))


def can_access_region(admin: Admin, region_type: str, district: Optional[str] = None,
                      state: Optional[str] = None, country: Optional[str] = None) -> bool:
    """
    Check whether an admin may act on a region.

    Args:
        admin: The acting admin
        region_type: "country", "state" or "district"
        district: District requested
        state: State requested
        country: Country requested

    Returns:
        bool: True if the region is within the admin's territory
    """
    if region_type not in REGION_TYPES:
        return False
    if admin.role == AdminRole.SUPER_ADMIN:
        return True

    if admin.role == AdminRole.NSA:
        checks = {"country": country == admin.country}
    elif admin.role == AdminRole.SSA:
        checks = {"country": country == admin.country, "state": state == admin.state}
    else:
        checks = {
            "country": country == admin.country,
            "state": state == admin.state,
            "district": district == admin.district,
        }

    # Region types below the admin's own level are not restricted.
    return checks.get(region_type, True)


class RegionDirectory:
    """Looks up regional admins in the document store."""

    @staticmethod
    def _find(role: AdminRole, **criteria) -> Optional[Dict[str, Any]]:
        response = requests.get(
            f"{BASE_URL}/admins/query",
            params={"role": role.value, **criteria},
        )
        if response.status_code == 404:
            # Collection not created yet
            return None
        raise_for_store_status(response, "Admins")
        return select_responsible(response.json())

    @staticmethod
    def resolve_admin_chain(district: Optional[str], state: Optional[str],
                            country: Optional[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        """
        Find the DSA, SSA and NSA responsible for a region.

        Each level is looked up on its own, so a missing DSA does not stop the
        SSA or NSA from being found. A level with no match is None.

        Args:
            district: District name, matched together with state
            state: State name
            country: Country name

        Returns:
            Dict: {"dsa": admin or None, "ssa": admin or None, "nsa": admin or None}

        Raises:
            UpstreamError: If the store cannot be reached
        """
        admins = {"dsa": None, "ssa": None, "nsa": None}

        try:
            if district and state:
                admins["dsa"] = RegionDirectory._find(AdminRole.DSA, district=district, state=state)
            if state:
                admins["ssa"] = RegionDirectory._find(AdminRole.SSA, state=state)
            if country:
                admins["nsa"] = RegionDirectory._find(AdminRole.NSA, country=country)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to resolve regional admins: {str(e)}")

        logger.debug(
            f"Admin chain for {district}/{state}/{country}: "
            + ", ".join(f"{role}={admin['id'] if admin else None}" for role, admin in admins.items())
        )
        return admins

    @staticmethod
    def admin_chain_for(address: Address) -> AdminChain:
        """Bind the admin chain snapshot for a customer address."""
        district, state, country = address.region()
        admins = RegionDirectory.resolve_admin_chain(district, state, country)
        return AdminChain(
            dsa_id=admins["dsa"]["id"] if admins["dsa"] else None,
            ssa_id=admins["ssa"]["id"] if admins["ssa"] else None,
            nsa_id=admins["nsa"]["id"] if admins["nsa"] else None,
        )
