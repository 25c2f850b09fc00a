"""
Identity validation against the host's current-user endpoint
"""
import json
from typing import List, Optional

import httpx

from filegate.core.config import Settings
from filegate.core.errors import NetworkFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import GateConfiguration
from filegate.models.write import Identity, RequestOrigin

logger = LoggingConfig.get_logger(__name__)


class IdentityValidator:
    """Exchanges a credential for an Identity.

    Candidate base URLs are tried sequentially: the configured override, the
    base the request reached us on, then the loopback default. An HTML body
    means "wrong base" even on a 200, and a network error only skips to the
    next candidate. ``validate`` never raises.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.default_base = settings.identity_default_base.rstrip("/")
        self.user_endpoint = settings.identity_user_endpoint
        self.token_header = settings.identity_token_header
        self.timeout = settings.identity_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=False)

    def candidate_bases(
        self,
        configuration: GateConfiguration,
        origin: Optional[RequestOrigin] = None,
    ) -> List[str]:
        """Ordered, de-duplicated candidate base URLs"""
        raw = [
            configuration.server_base_url,
            origin.base_url() if origin else None,
            self.default_base,
        ]
        bases = []
        seen = set()
        for base in raw:
            if not base:
                continue
            base = base.strip().rstrip("/")
            key = base.lower()
            if base and key not in seen:
                seen.add(key)
                bases.append(base)
        return bases

    async def validate(self, credential: Optional[str], bases: List[str]) -> Optional[Identity]:
        """Identity for credential from the first candidate that answers with JSON.

        Args:
            credential: Caller token; None short-circuits to None
            bases: Candidate base URLs, tried in order

        Returns:
            The identity, or None when no candidate accepted the credential
        """
        if not credential:
            return None

        for base in bases:
            try:
                identity = await self._try_base(base, credential)
            except NetworkFailure as e:
                logger.warning(
                    f"Identity endpoint unreachable at {e.base_url}: {e.message}",
                    extra={"base_url": e.base_url}
                )
                continue

            if identity is not None:
                logger.debug(
                    f"Credential validated against {base}",
                    extra={"base_url": base, "is_admin": identity.is_admin}
                )
                return identity

        logger.info(
            f"Credential not accepted by any of {len(bases)} identity candidate(s)",
            extra={"candidates": bases}
        )
        return None

    async def _try_base(self, base: str, credential: str) -> Optional[Identity]:
        url = f"{base}{self.user_endpoint}"
        headers = {
            self.token_header: credential,
            "Authorization": f"Bearer {credential}",
            "Accept": "application/json",
        }
        try:
            response = await self._client.get(url, headers=headers, timeout=self.timeout)
        except httpx.RequestError as e:
            raise NetworkFailure(f"{type(e).__name__}: {e}", base_url=base) from e

        if not response.is_success:
            logger.debug(
                f"Identity endpoint at {base} returned {response.status_code}",
                extra={"base_url": base, "status_code": response.status_code}
            )
            return None

        body = response.text.lstrip()
        if body.startswith("<"):
            logger.debug(
                f"Identity endpoint at {base} returned HTML, trying next candidate",
                extra={"base_url": base}
            )
            return None

        try:
            document = json.loads(body)
        except ValueError:
            logger.debug(f"Identity endpoint at {base} returned a non-JSON body")
            return None

        if not isinstance(document, dict):
            logger.debug(f"Identity endpoint at {base} returned a non-object JSON body")
            return None

        return Identity.from_document(document)

    async def aclose(self):
        """Close the HTTP client if this validator created it"""
        if self._owns_client:
            await self._client.aclose()
