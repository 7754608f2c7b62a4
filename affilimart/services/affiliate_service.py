"""Affiliate service for Affilimart application."""

import logging
from typing import Dict, Any, Optional

import requests

from affilimart import config
from affilimart.errors import NotFoundError, UpstreamError, ValidationError, raise_for_store_status
from affilimart.integrations import image_host, qr
from affilimart.models.base import now_iso, round_currency
from affilimart.models.booking import BookingStatus
from affilimart.models.identifiers import generate_partner_id
from affilimart.models.user import UserRole
from affilimart.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

EARNING_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)
MAX_PAGE_SIZE = 100


class AffiliateService:
    """Service for affiliate registration, referral QR codes and earnings."""

    @staticmethod
    def register_affiliate(name: str, email: str, phone: str, password: str,
                           address: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Register a new affiliate with a partner code.

        The partner code is derived from the state and country of the address,
        so both are required.

        Returns:
            Dict: Affiliate data with token
        """
        address = address or {}
        if not address.get("state") or not address.get("country"):
            raise ValidationError("State and country are required for affiliates")

        partner_id = generate_partner_id(address["state"], address["country"])
        return AuthService.register_user(
            name, email, phone, password,
            role=UserRole.AFFILIATE.value,
            address=address,
            partner_id=partner_id,
        )

    @staticmethod
    def login_affiliate(email: str, password: str) -> Dict[str, Any]:
        return AuthService.login(email, password, role=UserRole.AFFILIATE.value)

    @staticmethod
    def _current_affiliate(token: str):
        AuthService.require_role(token, [UserRole.AFFILIATE.value])
        return AuthService.get_current_user(token)

    @staticmethod
    def referral_link(affiliate_id: str) -> str:
        return f"{config.CLIENT_URL}/lead-form?ref={affiliate_id}"

    @staticmethod
    def generate_qr(token: str) -> Dict[str, Any]:
        """
        Generate the affiliate's referral QR code.

        An affiliate keeps one QR code; if it already exists it is returned
        unchanged. Otherwise the referral link is encoded, the image uploaded
        to the image host and its URL saved on the affiliate.

        Returns:
            Dict: {"qr_code": url, "referral_link": link}

        Raises:
            UpstreamError: If the upload fails; nothing is saved
        """
        user = AffiliateService._current_affiliate(token)
        link = AffiliateService.referral_link(user.id)

        if user.affiliate_info.qr_code:
            return {"qr_code": user.affiliate_info.qr_code, "referral_link": link}

        url = image_host.upload(qr.encode(link), config.QR_FOLDER)

        user.affiliate_info.qr_code = url
        user.updated_at = now_iso()
        try:
            response = requests.put(f"{BASE_URL}/users/{user.id}", json=user.to_dict())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to save QR code: {str(e)}")
        raise_for_store_status(response, "Affiliate")

        logger.info(f"QR code generated for affiliate {user.id}")
        return {"qr_code": url, "referral_link": link}

    @staticmethod
    def get_qr(token: str) -> Dict[str, Any]:
        """
        Get the affiliate's referral QR code.

        Raises:
            NotFoundError: If no QR code has been generated yet
        """
        user = AffiliateService._current_affiliate(token)
        if not user.affiliate_info.qr_code:
            raise NotFoundError("QR code not generated yet")
        return {
            "qr_code": user.affiliate_info.qr_code,
            "referral_link": AffiliateService.referral_link(user.id),
        }

    @staticmethod
    def get_earnings(token: str, start_date: Optional[str] = None, end_date: Optional[str] = None,
                     page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Get the affiliate's commission earnings.

        Only confirmed and completed bookings referred by the affiliate count.
        Bookings are listed newest first; the totals cover every matching
        booking, not just the requested page.

        Args:
            token: JWT token for authentication
            start_date: Earliest booking creation date, ISO format
            end_date: Latest booking creation date, ISO format, inclusive
            page: Page number, from 1
            limit: Page size

        Returns:
            Dict: {"earnings", "total_earnings", "by_status", "balance",
                   "page", "limit", "total", "pages"}
        """
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Page must be at least 1 and limit between 1 and {MAX_PAGE_SIZE}")

        user = AffiliateService._current_affiliate(token)

        try:
            response = requests.get(f"{BASE_URL}/bookings/query", params={"affiliate_id": user.id})
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load earnings: {str(e)}")
        if response.status_code == 404:
            bookings = []
        else:
            raise_for_store_status(response, "Bookings")
            bookings = response.json()

        matching = []
        for booking in bookings:
            if booking.get("status") not in EARNING_STATUSES:
                continue
            created = booking.get("created_at") or ""
            if start_date and created[:len(start_date)] < start_date:
                continue
            if end_date and created[:len(end_date)] > end_date:
                continue
            matching.append(booking)
        matching.sort(key=lambda b: b.get("created_at", ""), reverse=True)

        by_status: Dict[str, float] = {}
        earnings = []
        for booking in matching:
            commission = (booking.get("commissions") or {}).get("affiliate")
            if not commission:
                continue
            by_status[commission["status"]] = by_status.get(commission["status"], 0.0) + commission["amount"]
            earnings.append({
                "booking_id": booking["booking_id"],
                "service_id": booking["service_id"],
                "booking_status": booking["status"],
                "amount": commission["amount"],
                "status": commission["status"],
                "paid_at": commission.get("paid_at"),
                "created_at": booking.get("created_at"),
            })

        total = len(earnings)
        start = (page - 1) * limit
        return {
            "earnings": earnings[start:start + limit],
            "total_earnings": round_currency(sum(by_status.values())),
            "by_status": {status: round_currency(amount) for status, amount in by_status.items()},
            "balance": {
                "total_earnings": user.affiliate_info.total_earnings,
                "available_balance": user.affiliate_info.available_balance,
            },
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        }
