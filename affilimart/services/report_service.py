"""Admin reports for Affilimart application."""

import logging
from typing import Dict, Any, List

import requests

from affilimart import config
from affilimart.errors import UpstreamError, raise_for_store_status
from affilimart.models.admin import Admin
from affilimart.models.base import round_currency
from affilimart.models.commission import ROLES
from affilimart.models.lead import LeadStatus
from affilimart.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL


class ReportService:
    """Aggregate reports over the records in an admin's region."""

    @staticmethod
    def _records_for(admin: Admin, collection: str) -> List[Dict[str, Any]]:
        params = {} if admin.is_super_admin else {f"admin_chain.{admin.role.value}_id": admin.id}
        try:
            response = requests.get(f"{BASE_URL}/{collection}/query", params=params)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load {collection}: {str(e)}")
        if response.status_code == 404:
            return []
        raise_for_store_status(response, collection.capitalize())
        return response.json()

    @staticmethod
    def commission_report(token: str) -> Dict[str, Any]:
        """
        Sum commission entries by role and status.

        Regional admins see their own role's commissions on bookings in their
        chain; the super admin sees every role on every booking.

        Returns:
            Dict: {"bookings": n, "roles": {role: {"total", "by_status"}}}
        """
        admin = AuthService.get_current_admin(token)
        roles = ROLES if admin.is_super_admin else (admin.role.value,)

        report = {role: {"total": 0.0, "by_status": {}} for role in roles}
        counted = 0
        for booking in ReportService._records_for(admin, "bookings"):
            commissions = booking.get("commissions")
            if not commissions:
                continue
            counted += 1
            for role in roles:
                entry = commissions.get(role)
                if not entry:
                    continue
                by_status = report[role]["by_status"]
                by_status[entry["status"]] = by_status.get(entry["status"], 0.0) + entry["amount"]
                report[role]["total"] += entry["amount"]

        for summary in report.values():
            summary["total"] = round_currency(summary["total"])
            summary["by_status"] = {k: round_currency(v) for k, v in summary["by_status"].items()}

        logger.debug(f"Commission report for admin {admin.id} over {counted} bookings")
        return {"bookings": counted, "roles": report}

    @staticmethod
    def lead_conversion_report(token: str) -> Dict[str, Any]:
        """
        Count leads by type and status and compute the win rate per type.

        The win rate is closed_won over all closed leads of that type, or None
        while none are closed.
        """
        admin = AuthService.get_current_admin(token)

        by_type: Dict[str, Dict[str, int]] = {}
        for lead in ReportService._records_for(admin, "leads"):
            counts = by_type.setdefault(lead["type"], {})
            counts[lead["status"]] = counts.get(lead["status"], 0) + 1

        report = {}
        for lead_type, counts in by_type.items():
            won = counts.get(LeadStatus.CLOSED_WON.value, 0)
            closed = won + counts.get(LeadStatus.CLOSED_LOST.value, 0)
            report[lead_type] = {
                "total": sum(counts.values()),
                "by_status": counts,
                "win_rate": round(won / closed, 4) if closed else None,
            }
        return report
