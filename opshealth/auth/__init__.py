"""Bearer-token authentication scoped to one organization."""

from opshealth.auth.dependencies import get_current_org_id
from opshealth.auth.jwt import create_org_token, decode_org_token

__all__ = ["create_org_token", "decode_org_token", "get_current_org_id"]
