"""ADLENS — Meta Connection Routes.

Checks that the configured Meta token and ad account work before a sync is
attempted. Failures map the same way as the data routes: missing settings
are a 400, an upstream error is a 502.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from adlens.api.deps import get_meta_client, to_http_error
from adlens.connectors.meta.client import MetaClient
from adlens.core.errors import AdlensError
from adlens.core.logging import get_logger

logger = get_logger("api.meta")

router = APIRouter(prefix="/meta", tags=["Meta"])


class TokenStatus(BaseModel):
    valid: bool = False
    expires_at: int = 0
    """Unix seconds; 0 for tokens that never expire."""
    scopes: List[str] = []
    app_id: str = ""


class AccountStatus(BaseModel):
    """The ad account insights are pulled from."""

    account_id: str = ""
    name: str = ""
    account_status: int = 0
    currency: str = ""
    timezone_name: str = ""


@router.get("/validate-token", response_model=TokenStatus)
async def validate_token(client: MetaClient = Depends(get_meta_client)):
    """Report whether the access token is valid and what it may read."""
    try:
        client.check_configured()
        return TokenStatus(**await client.validate_token())
    except AdlensError as e:
        logger.error(f"Token validation failed: {e}")
        raise to_http_error(e, "Token validation")
    finally:
        await client.close()


@router.get("/account-info", response_model=AccountStatus)
async def account_info(client: MetaClient = Depends(get_meta_client)):
    try:
        client.check_configured()
        info = await client.get_account_info()
    except AdlensError as e:
        logger.error(f"Account lookup for {client.account_path} failed: {e}")
        raise to_http_error(e, "Account lookup")
    finally:
        await client.close()
    return AccountStatus(**{k: v for k, v in info.items() if k in AccountStatus.model_fields})
