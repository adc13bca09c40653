# ===== agendando/services/integration/integration_service.py =====
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from agendando.models.integration import Integration, IntegrationProvider
from agendando.utils.encryption import encrypt_token, decrypt_token

logger = logging.getLogger(__name__)


class IntegrationService:
    """Lookup and token storage for a host's connected providers"""

    @staticmethod
    def get_active(db: Session, host_id: UUID, provider: IntegrationProvider) -> Optional[Integration]:
        return db.query(Integration).filter_by(
            host_id=host_id,
            provider=provider,
            is_active=True,
        ).first()

    @staticmethod
    def is_connected(db: Session, host_id: UUID, provider: IntegrationProvider) -> bool:
        return IntegrationService.get_active(db, host_id, provider) is not None

    @staticmethod
    def get_access_token(integration: Integration) -> Optional[str]:
        return decrypt_token(integration.access_token_encrypted)

    @staticmethod
    def get_refresh_token(integration: Integration) -> Optional[str]:
        return decrypt_token(integration.refresh_token_encrypted)

    @staticmethod
    def store_tokens(
            integration: Integration,
            access_token: str,
            refresh_token: Optional[str] = None,
            expires_at: Optional[datetime] = None,
    ) -> None:
        """Encrypt and set tokens on the row; the caller commits"""
        integration.access_token_encrypted = encrypt_token(access_token)
        if refresh_token:
            integration.refresh_token_encrypted = encrypt_token(refresh_token)
        integration.expires_at = expires_at

    @staticmethod
    def connect(
            db: Session,
            host_id: UUID,
            provider: IntegrationProvider,
            access_token: str,
            refresh_token: Optional[str] = None,
            expires_at: Optional[datetime] = None,
            account_email: Optional[str] = None,
            provider_config: Optional[dict] = None,
    ) -> Integration:
        """Create or refresh the (host, provider) integration row"""
        integration = db.query(Integration).filter_by(host_id=host_id, provider=provider).first()
        if integration is None:
            integration = Integration(host_id=host_id, provider=provider)
            db.add(integration)

        IntegrationService.store_tokens(integration, access_token, refresh_token, expires_at)
        integration.account_email = account_email
        integration.provider_config = provider_config or {}
        integration.is_active = True
        db.commit()
        db.refresh(integration)

        logger.info(f"Connected {provider.value} for host {host_id}")
        return integration
