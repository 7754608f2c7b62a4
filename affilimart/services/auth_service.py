"""Authentication service for Affilimart application."""

import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

import bcrypt
import jwt
import requests

from affilimart import config
from affilimart.errors import (
    AuthError,
    ConflictError,
    UpstreamError,
    ValidationError,
    raise_for_store_status,
)
from affilimart.models.admin import Admin
from affilimart.models.user import Address, User, UserRole

logger = logging.getLogger(__name__)

# Base URL for the JSON document store
BASE_URL = config.STORE_URL

MIN_PASSWORD_LENGTH = 8
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

USER_KIND = "user"
ADMIN_KIND = "admin"


class AuthService:
    """Service for handling user and admin authentication."""

    @staticmethod
    def _hash_password(password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        password_bytes = password.encode('utf-8')
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode('utf-8')

    @staticmethod
    def _verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Previously hashed password

        Returns:
            bool: True if password matches, False otherwise
        """
        if not hashed_password:
            return False

        try:
            return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification error: {str(e)}")
            return False

    @staticmethod
    def _generate_jwt(subject_id: str, role: str, kind: str = USER_KIND) -> str:
        """
        Generate a JWT token.

        Args:
            subject_id: User or admin ID to encode in the token
            role: Role of the subject
            kind: "user" or "admin"

        Returns:
            str: JWT token
        """
        now = datetime.now(timezone.utc)
        payload = {
            "id": subject_id,
            "role": role,
            "kind": kind,
            "exp": now + timedelta(days=config.JWT_EXPIRATION_DAYS),
            "iat": now,
        }
        return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        """
        Verify a JWT token and return who it was issued to.

        Args:
            token: JWT token

        Returns:
            Dict: {"id", "role", "kind"}

        Raises:
            AuthError: If token is missing, invalid or expired
        """
        if not token:
            raise AuthError("No token provided")
        try:
            payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        except jwt.PyJWTError as e:
            raise AuthError(f"Invalid or expired token: {str(e)}")

        if not payload.get("id") or not payload.get("role"):
            raise AuthError("Invalid token payload")

        return {"id": payload["id"], "role": payload["role"], "kind": payload.get("kind", USER_KIND)}

    @staticmethod
    def require_role(token: str, roles: List[str]) -> Dict[str, Any]:
        """
        Verify that the token holder has one of the required roles.

        Args:
            token: JWT token for authentication
            roles: Allowed role values, user or admin roles

        Returns:
            Dict: Decoded principal

        Raises:
            AuthError: If the token is invalid or the role is not allowed
        """
        principal = AuthService.verify_token(token)
        if principal["role"] not in roles:
            raise AuthError(
                f"Access denied. This action requires one of these roles: {', '.join(roles)}",
                status_code=403,
            )
        return principal

    @staticmethod
    def _validate_credentials(email: str, phone: str, password: str) -> None:
        if not EMAIL_PATTERN.match(email or ""):
            raise ValidationError("Please enter a valid email")
        if not phone:
            raise ValidationError("Phone number is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    @staticmethod
    def _ensure_unique(collection: str, email: str, phone: str) -> None:
        """Reject an email or phone already on file; the store enforces it again on insert."""
        for key, value in (("email", email), ("phone", phone)):
            response = requests.get(f"{BASE_URL}/{collection}/query", params={key: value})
            if response.status_code == 404:
                # Collection not found, this is the first record
                continue
            raise_for_store_status(response)
            if response.json():
                raise ConflictError(f"Account with this {key} already exists")

    @staticmethod
    def register_user(name: str, email: str, phone: str, password: str,
                      role: str = UserRole.CUSTOMER.value,
                      address: Optional[Dict[str, Any]] = None,
                      partner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Register a new marketplace user.

        Args:
            name: User's full name
            email: User's email
            phone: User's phone number
            password: Plain text password, hashed before it is stored
            role: customer, affiliate or service_provider
            address: Postal address fields
            partner_id: Partner code (affiliates only)

        Returns:
            Dict: User data with token

        Raises:
            ValidationError: If a field is missing or malformed
            ConflictError: If the email or phone is already registered
            UpstreamError: If the store fails
        """
        if not name:
            raise ValidationError("Name is required")
        email = (email or "").strip().lower()
        phone = (phone or "").strip()
        AuthService._validate_credentials(email, phone, password)
        try:
            user_role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}")

        try:
            AuthService._ensure_unique("users", email, phone)

            user = User(
                name=name.strip(),
                email=email,
                phone=phone,
                password=AuthService._hash_password(password),
                role=user_role,
                address=Address.from_dict(address),
            )
            if partner_id and user.affiliate_info is not None:
                user.affiliate_info.partner_id = partner_id

            logger.info(f"Creating new {user_role.value} user: {email}")

            response = requests.post(f"{BASE_URL}/users", json=user.to_dict())
            raise_for_store_status(response, "User")

            return {
                "user": User.from_dict(response.json()).to_public_dict(),
                "token": AuthService._generate_jwt(user.id, user_role.value),
            }

        except requests.RequestException as e:
            raise UpstreamError(f"Registration failed: {str(e)}")

    @staticmethod
    def login(email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
        """
        Login a marketplace user.

        Args:
            email: User's email
            password: User's password
            role: If given, the account must have this role

        Returns:
            Dict: User data with token

        Raises:
            AuthError: If the credentials are wrong
        """
        try:
            response = requests.get(f"{BASE_URL}/users/query", params={"email": (email or "").strip().lower()})
            if response.status_code == 404:
                users = []
            else:
                raise_for_store_status(response)
                users = response.json()
        except requests.RequestException as e:
            raise UpstreamError(f"Login failed: {str(e)}")

        if not users or not AuthService._verify_password(password, users[0].get("password")):
            raise AuthError("Invalid email or password.")

        user = User.from_dict(users[0])
        if role and user.role.value != role:
            raise AuthError("Invalid email or password.")
        if not user.is_active:
            raise AuthError("Account is deactivated", status_code=403)

        return {
            "user": user.to_public_dict(),
            "token": AuthService._generate_jwt(user.id, user.role.value),
        }

    @staticmethod
    def admin_login(email: str, password: str) -> Dict[str, Any]:
        """
        Login an admin and stamp the login time.

        Raises:
            AuthError: If the credentials are wrong or the admin is inactive
        """
        try:
            response = requests.get(f"{BASE_URL}/admins/query", params={"email": (email or "").strip().lower()})
            if response.status_code == 404:
                admins = []
            else:
                raise_for_store_status(response)
                admins = response.json()

            if not admins or not AuthService._verify_password(password, admins[0].get("password")):
                raise AuthError("Invalid email or password.")

            admin = Admin.from_dict(admins[0])
            if not admin.is_active:
                raise AuthError("Account is deactivated", status_code=403)

            admin.last_login = datetime.now().isoformat()
            response = requests.put(f"{BASE_URL}/admins/{admin.id}", json=admin.to_dict())
            raise_for_store_status(response, "Admin")

            data = admin.to_dict()
            del data["password"]
            return {
                "admin": data,
                "token": AuthService._generate_jwt(admin.id, admin.role.value, ADMIN_KIND),
            }

        except requests.RequestException as e:
            raise UpstreamError(f"Login failed: {str(e)}")

    @staticmethod
    def get_current_user(token: str) -> User:
        """
        Load the user a token was issued to.

        Raises:
            AuthError: If the token is invalid or was issued to an admin
            NotFoundError: If the user no longer exists
        """
        principal = AuthService.verify_token(token)
        if principal["kind"] != USER_KIND:
            raise AuthError("This action requires a user account", status_code=403)

        try:
            response = requests.get(f"{BASE_URL}/users/{principal['id']}")
            raise_for_store_status(response, f"User with ID {principal['id']}")
            return User.from_dict(response.json())
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load user: {str(e)}")

    @staticmethod
    def get_current_admin(token: str, roles: Optional[List[str]] = None) -> Admin:
        """
        Load the admin a token was issued to.

        Args:
            token: JWT token
            roles: Allowed admin roles; any admin when None

        Raises:
            AuthError: If the token is not an admin token or the role is not allowed
            NotFoundError: If the admin no longer exists
        """
        principal = AuthService.verify_token(token)
        if principal["kind"] != ADMIN_KIND:
            raise AuthError("This action requires an admin account", status_code=403)
        if roles is not None and principal["role"] not in roles:
            raise AuthError(
                f"Access denied. This action requires one of these roles: {', '.join(roles)}",
                status_code=403,
            )

        try:
            response = requests.get(f"{BASE_URL}/admins/{principal['id']}")
            raise_for_store_status(response, f"Admin with ID {principal['id']}")
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to load admin: {str(e)}")

        admin = Admin.from_dict(response.json())
        if not admin.is_active:
            raise AuthError("Account is deactivated", status_code=403)
        return admin
