from fastapi import APIRouter

from nftmarket.api.v1.health import router as health_router
from nftmarket.api.v1.auth import router as auth_router
from nftmarket.api.v1.deployments import router as deployments_router
from nftmarket.api.v1.roles import router as roles_router
from nftmarket.api.v1.tokens import router as tokens_router
from nftmarket.api.v1.funds import router as funds_router
from nftmarket.api.v1.licenses import router as licenses_router
from nftmarket.api.v1.marketplace import router as marketplace_router
from nftmarket.api.v1.ledger import router as ledger_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])
v1_router.include_router(deployments_router, tags=["deployments"])
v1_router.include_router(roles_router, tags=["roles"])

# ------------------------------------------------------------------
# COLLABORATORS (ownership registry, funds ledger, licenses)
# ------------------------------------------------------------------
v1_router.include_router(tokens_router, tags=["tokens"])
v1_router.include_router(funds_router, tags=["funds"])
v1_router.include_router(licenses_router, tags=["licenses"])

# ------------------------------------------------------------------
# MARKETPLACE
# ------------------------------------------------------------------
v1_router.include_router(marketplace_router, tags=["marketplace"])
v1_router.include_router(ledger_router)
