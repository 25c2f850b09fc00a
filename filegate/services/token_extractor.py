"""
Credential extraction from request headers and query parameters
"""
import re
from typing import Mapping, Optional

from filegate.core.config import Settings

# Vendor style: MediaBrowser Client="...", Token="abc"
_TOKEN_ATTRIBUTE = re.compile(r'Token="([^"]*)"', re.IGNORECASE)
_BEARER_PREFIX = "bearer "


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; starlette Headers are not
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    if value is None:
        return None
    value = value.strip()
    return value or None


def from_authorization(value: Optional[str]) -> Optional[str]:
    """Credential from an Authorization header value, or None"""
    if not value:
        return None
    if value.lower().startswith(_BEARER_PREFIX):
        token = value[len(_BEARER_PREFIX):].strip()
        if token:
            return token
    match = _TOKEN_ATTRIBUTE.search(value)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


class TokenExtractor:
    """Pulls credentials out of an inbound request without validating them"""

    def __init__(self, settings: Settings):
        self.primary_header = settings.token_header_primary
        self.secondary_header = settings.token_header_secondary
        self.token_query_param = settings.token_query_param
        self.api_key_header = settings.api_key_header
        self.api_key_query_param = settings.api_key_query_param

    def extract_credential(
        self,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> Optional[str]:
        """First credential found, in priority order.

        Authorization (Bearer or Token="..."), then the primary and secondary
        token headers, then the token query parameter.
        """
        token = from_authorization(_header(headers, "Authorization"))
        if token:
            return token

        for name in (self.primary_header, self.secondary_header):
            token = _header(headers, name)
            if token:
                return token

        token = (query.get(self.token_query_param) or "").strip()
        return token or None

    def extract_api_key(
        self,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> Optional[str]:
        """API key for the non-admin path, header first"""
        key = _header(headers, self.api_key_header)
        if key:
            return key
        key = (query.get(self.api_key_query_param) or "").strip()
        return key or None
