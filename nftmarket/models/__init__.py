# Import every model so Base.metadata is complete for create_all / alembic.
from nftmarket.models.account import Account  # noqa: F401
from nftmarket.models.audit_log import AuditLogRecord  # noqa: F401
from nftmarket.models.deployment import Deployment  # noqa: F401
from nftmarket.models.funds import FundAllowance, FundBalance  # noqa: F401
from nftmarket.models.idempotency_key import IdempotencyKeyRecord  # noqa: F401
from nftmarket.models.ledger_entry import MarketLedgerEntry  # noqa: F401
from nftmarket.models.license import License  # noqa: F401
from nftmarket.models.listing import Bid, Listing  # noqa: F401
from nftmarket.models.role_grant import RoleGrant  # noqa: F401
from nftmarket.models.sale import Payout, Sale  # noqa: F401
from nftmarket.models.token import OperatorApproval, Token, TokenBalance  # noqa: F401
