"""Lead service for Affilimart application."""

import logging
from typing import Dict, Any, Optional, List

import requests

from affilimart import config
from affilimart.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    raise_for_store_status,
)
from affilimart.models.admin import AdminRole
from affilimart.models.base import AuthorRef
from affilimart.models.identifiers import generate_lead_id
from affilimart.models.lead import (
    Communication,
    CustomerInfo,
    Lead,
    LeadPriority,
    LeadSource,
    LeadStatus,
    LeadType,
)
from affilimart.models.user import Address, UserRole
from affilimart.services.auth_service import ADMIN_KIND, AuthService
from affilimart.services.region_directory import RegionDirectory

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

MAX_ID_ATTEMPTS = 3


class LeadService:
    """Service for loan, insurance and real estate leads."""

    @staticmethod
    def _find(lead_id: str) -> Lead:
        try:
            response = requests.get(f"{BASE_URL}/leads/query", params={"lead_id": lead_id})
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load lead: {str(e)}")
        raise_for_store_status(response, f"Lead {lead_id}")

        matches = response.json()
        if not matches:
            raise NotFoundError(f"Lead {lead_id} not found")
        return Lead.from_dict(matches[0])

    @staticmethod
    def _save(lead: Lead) -> Dict[str, Any]:
        try:
            response = requests.put(f"{BASE_URL}/leads/{lead.id}", json=lead.to_dict())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to save lead: {str(e)}")
        raise_for_store_status(response, f"Lead {lead.lead_id}")
        return response.json()

    @staticmethod
    def _load_for(token: str, lead_id: str, allow_owner: bool = True):
        """
        Load a lead the caller may work on.

        The referring affiliate, admins in the lead's chain and the super
        admin always qualify; the customer who submitted it only when
        ``allow_owner`` is set.
        """
        principal = AuthService.verify_token(token)
        lead = LeadService._find(lead_id)

        if principal["kind"] == ADMIN_KIND:
            chain = lead.admin_chain
            if principal["role"] == AdminRole.SUPER_ADMIN.value or principal["id"] in (
                chain.dsa_id, chain.ssa_id, chain.nsa_id
            ):
                return principal, lead
        elif principal["id"] == lead.affiliate_id:
            return principal, lead
        elif allow_owner and principal["id"] == lead.user_id:
            return principal, lead

        raise AuthError(f"You are not allowed to do this on lead {lead_id}", status_code=403)

    @staticmethod
    def create_lead(token: str, lead_type: str, customer_info: Dict[str, Any],
                    details: Optional[Dict[str, Any]] = None,
                    affiliate_id: Optional[str] = None,
                    source: str = LeadSource.QR_SCAN.value,
                    priority: str = LeadPriority.MEDIUM.value) -> Dict[str, Any]:
        """
        Submit a new lead.

        The lead id is prefixed by type (LN, IN or RE). The regional admins
        are resolved from the customer's address, falling back to the
        submitting user's address when none is given.

        Args:
            token: JWT token for authentication
            lead_type: loan, insurance or real_estate
            customer_info: {"name", "email", "phone", "address"}
            details: Type specific questionnaire answers
            affiliate_id: Referring affiliate, usually from a QR scan
            source: qr_scan, website, referral, direct or other
            priority: low, medium, high or urgent

        Returns:
            Dict: The saved lead
        """
        user = AuthService.get_current_user(token)

        try:
            lead_type_value = LeadType(lead_type)
            source_value = LeadSource(source)
            priority_value = LeadPriority(priority)
        except ValueError as e:
            raise ValidationError(str(e))

        customer_info = customer_info or {}
        if not customer_info.get("name"):
            raise ValidationError("Customer name is required")
        if not customer_info.get("email") and not customer_info.get("phone"):
            raise ValidationError("Customer email or phone is required")

        address = Address.from_dict(customer_info.get("address"))
        if not any(address.region()):
            address = user.address

        if affiliate_id:
            try:
                response = requests.get(f"{BASE_URL}/users/{affiliate_id}")
            except requests.RequestException as e:
                raise UpstreamError(f"Failed to load affiliate: {str(e)}")
            if response.status_code == 404 or (
                response.ok and response.json().get("role") != UserRole.AFFILIATE.value
            ):
                raise ValidationError(f"Unknown affiliate {affiliate_id}")
            raise_for_store_status(response, "Affiliate")

        lead = Lead.create(
            user_id=user.id,
            lead_type=lead_type_value,
            customer_info=CustomerInfo(
                name=customer_info["name"],
                email=customer_info.get("email"),
                phone=customer_info.get("phone"),
                address=address,
            ),
            admin_chain=RegionDirectory.admin_chain_for(address),
            affiliate_id=affiliate_id,
            details=details,
            source=source_value,
            priority=priority_value,
        )

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            try:
                response = requests.post(f"{BASE_URL}/leads", json=lead.to_dict())
                raise_for_store_status(response, "Lead")
                logger.info(f"Lead {lead.lead_id} created by user {user.id}")
                return response.json()
            except ConflictError:
                logger.warning(f"Lead reference {lead.lead_id} taken (attempt {attempt})")
                lead.lead_id = generate_lead_id(lead_type_value.value)
            except requests.RequestException as e:
                raise UpstreamError(f"Failed to create lead: {str(e)}")
        raise ConflictError("Could not allocate a unique lead reference")

    @staticmethod
    def get_lead(token: str, lead_id: str) -> Lead:
        _, lead = LeadService._load_for(token, lead_id)
        return lead

    @staticmethod
    def list_leads(token: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the caller's leads, newest first."""
        principal = AuthService.verify_token(token)
        if principal["kind"] == ADMIN_KIND:
            if principal["role"] == AdminRole.SUPER_ADMIN.value:
                params = {}
            else:
                params = {f"admin_chain.{principal['role']}_id": principal["id"]}
        elif principal["role"] == UserRole.AFFILIATE.value:
            params = {"affiliate_id": principal["id"]}
        else:
            params = {"user_id": principal["id"]}
        if status:
            params["status"] = LeadStatus(status).value

        try:
            response = requests.get(f"{BASE_URL}/leads/query", params=params)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to list leads: {str(e)}")
        if response.status_code == 404:
            return []
        raise_for_store_status(response, "Leads")
        return sorted(response.json(), key=lambda l: l.get("created_at", ""), reverse=True)

    @staticmethod
    def update_status(token: str, lead_id: str, status: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        Move a lead through the sales pipeline.

        Raises:
            InvalidTransitionError: If the lead is already closed
        """
        _, lead = LeadService._load_for(token, lead_id, allow_owner=False)
        try:
            new_status = LeadStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown lead status: {status}")

        lead.update_status(new_status, reason)
        logger.info(f"Lead {lead_id} moved to {new_status.value}")
        return LeadService._save(lead)

    @staticmethod
    def log_communication(token: str, lead_id: str, type: str, direction: str, content: str,
                          follow_up_date: Optional[str] = None,
                          outcome: Optional[str] = None) -> Dict[str, Any]:
        """Record a call, email, message or meeting with the lead's customer."""
        principal, lead = LeadService._load_for(token, lead_id, allow_owner=False)
        if not content:
            raise ValidationError("Communication content is required")

        lead.log_communication(Communication(
            type=type,
            direction=direction,
            content=content,
            conducted_by=AuthorRef(kind=principal["kind"], id=principal["id"]),
            follow_up_date=follow_up_date,
            outcome=outcome,
        ))
        return LeadService._save(lead)

    @staticmethod
    def add_note(token: str, lead_id: str, content: str) -> Dict[str, Any]:
        principal, lead = LeadService._load_for(token, lead_id)
        lead.add_note(AuthorRef(kind=principal["kind"], id=principal["id"]), content)
        return LeadService._save(lead)
