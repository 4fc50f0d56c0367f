"""eBay integration API endpoints."""

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from app.api.deps import get_current_user, get_current_user_optional, get_ebay_services
from app.schemas.ebay import (
    AspectLookupResponse,
    AuthURLResponse,
    CatalogStatusResponse,
    ConnectionStatusResponse,
    ItemAspectSchema,
    MessageResponse,
    ProbeResponse,
    SyncReportResponse,
)
from app.services.ebay import (
    AuthRequestError,
    EbayOAuthError,
    EbayServices,
    RefreshError,
    SyncConflictError,
    SyncError,
)

router = APIRouter()


def _status_from_credential(credential) -> ConnectionStatusResponse:
    if credential is None:
        return ConnectionStatusResponse(connected=False)

    return ConnectionStatusResponse(
        connected=credential.is_connected,
        username=credential.username,
        expires_at=credential.expires_at,
        is_expired=credential.is_expired,
        has_refresh_token=bool(credential.refresh_token),
        scopes=list(credential.scopes or []),
    )


# OAuth connection


@router.get("/auth/url", response_model=AuthURLResponse)
async def get_auth_url(
    origin: Optional[str] = Query(None, description="Origin to return to after consent"),
    account_id: Optional[str] = Depends(get_current_user_optional),
    services: EbayServices = Depends(get_ebay_services),
) -> AuthURLResponse:
    """Get the eBay consent URL.

    The user visits this URL to authorize the app; eBay redirects back to
    ``{origin}/ebay/callback`` with a code and the returned state.
    """
    try:
        url, state = services.oauth.begin_authorization(account_id, origin)
    except AuthRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthURLResponse(authorization_url=url, state=state)


@router.get("/auth/callback")
async def oauth_callback(
    code: str = Query(..., description="Authorization code from eBay"),
    state: str = Query(..., description="State issued with the consent URL"),
    services: EbayServices = Depends(get_ebay_services),
) -> RedirectResponse:
    """Handle the eBay OAuth callback by exchanging the code for tokens."""
    try:
        await services.oauth.complete_authorization(code, state)
        return RedirectResponse(
            url="/settings?ebay_connected=true",
            status_code=status.HTTP_302_FOUND,
        )
    except EbayOAuthError as e:
        return RedirectResponse(
            url=f"/settings?{urlencode({'ebay_error': e.message})}",
            status_code=status.HTTP_302_FOUND,
        )


@router.get("/auth/status", response_model=ConnectionStatusResponse)
async def get_connection_status(
    account_id: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> ConnectionStatusResponse:
    """Check the stored eBay credential for the current account."""
    credential = await services.token_store.get(account_id)
    return _status_from_credential(credential)


@router.post("/auth/refresh", response_model=ConnectionStatusResponse)
async def refresh_token(
    account_id: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> ConnectionStatusResponse:
    """Refresh the eBay access token now."""
    try:
        refreshed = await services.oauth.refresh(account_id)
    except RefreshError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Reconnect your eBay account: {e.message}",
        )
    except EbayOAuthError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Token refresh failed, try again later: {e.message}",
        )
    return _status_from_credential(refreshed)


@router.post("/auth/disconnect", response_model=MessageResponse)
async def disconnect_ebay(
    account_id: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> MessageResponse:
    """Disconnect eBay by deleting the stored credential."""
    if await services.oauth.disconnect(account_id):
        return MessageResponse(message="eBay account disconnected successfully")
    return MessageResponse(message="No eBay account was connected")


@router.get("/connection/probe", response_model=ProbeResponse)
async def probe_connection(
    account_id: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> ProbeResponse:
    """Verify with eBay that the stored token still works."""
    result = await services.health.probe(account_id)
    return ProbeResponse(**result._asdict())


# Category catalog


@router.get("/catalog/status", response_model=CatalogStatusResponse)
async def get_catalog_status(
    scope: Optional[str] = Query(None, description="Marketplace id, e.g. EBAY_US"),
    _: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> CatalogStatusResponse:
    """Category cache size, last sync and whether a sync is needed."""
    result = await services.synchronizer.status(scope or services.settings.EBAY_MARKETPLACE_ID)
    return CatalogStatusResponse(
        **result._asdict(),
        staleness_threshold=services.synchronizer.staleness_threshold,
    )


@router.post("/catalog/sync", response_model=SyncReportResponse)
async def sync_catalog(
    scope: Optional[str] = Query(None, description="Marketplace id, e.g. EBAY_US"),
    _: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> SyncReportResponse:
    """Download the full eBay category tree into the cache."""
    try:
        report = await services.synchronizer.sync(
            scope or services.settings.EBAY_MARKETPLACE_ID
        )
    except SyncConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SyncError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return SyncReportResponse(**report._asdict())


@router.get(
    "/catalog/categories/{category_id}/aspects",
    response_model=AspectLookupResponse,
)
async def get_category_aspects(
    category_id: str,
    scope: Optional[str] = Query(None, description="Marketplace id, e.g. EBAY_US"),
    _: str = Depends(get_current_user),
    services: EbayServices = Depends(get_ebay_services),
) -> AspectLookupResponse:
    """Required and suggested item aspects for a category."""
    try:
        lookup = await services.publisher.lookup_aspects(category_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return AspectLookupResponse(
        category_id=lookup.category_id,
        source=lookup.source,
        fallback_version=lookup.fallback_version,
        aspects=[
            ItemAspectSchema(
                name=aspect.name,
                required=aspect.required,
                value_type=aspect.value_type,
                possible_values=list(aspect.possible_values) if aspect.possible_values else None,
                unit=aspect.unit,
            )
            for aspect in lookup.aspects
        ],
    )
