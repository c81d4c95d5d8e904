# nftmarket/services/ownership_registry.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from nftmarket.core.errors import InvalidAsset, NotFound, Unauthorized
from nftmarket.models.deployment import Deployment
from nftmarket.models.enums import DeploymentKind, Role
from nftmarket.models.token import OperatorApproval, Token, TokenBalance
from nftmarket.services.role_service import RoleService

logger = logging.getLogger(__name__)

TOKEN_COLLECTION_KINDS = {
    DeploymentKind.SINGLE_NFT.value,
    DeploymentKind.MULTI_NFT.value,
    DeploymentKind.OWNERSHIP_CERTIFICATE.value,
}


class OwnershipRegistry:
    """
    Token ownership for every NFT collection the marketplace trades:
    single-edition (supply 1), multi-edition (supply n) and ownership
    certificates (governor-issued, governor-moved).

    Methods flush but never commit.
    """

    def __init__(self, roles: Optional[RoleService] = None):
        self.roles = roles or RoleService()

    # ─────────────────────────────────────────────
    # INTERNAL HELPERS
    # ─────────────────────────────────────────────

    def _collection(self, db: Session, collection: str) -> Deployment:
        dep = db.get(Deployment, collection)
        if dep is None or dep.kind not in TOKEN_COLLECTION_KINDS:
            raise InvalidAsset(f"{collection} is not an NFT collection.")
        return dep

    def _require_kind(self, dep: Deployment, kind: DeploymentKind) -> None:
        if dep.kind != kind.value:
            raise InvalidAsset(f"{dep.address} is a {dep.kind}, not a {kind.value}.")

    def _balance_row(self, db: Session, collection: str, token_id: int, owner: str) -> Optional[TokenBalance]:
        return db.execute(
            select(TokenBalance)
            .where(
                TokenBalance.collection == collection,
                TokenBalance.token_id == token_id,
                TokenBalance.owner == owner,
            )
            .with_for_update()
        ).scalar_one_or_none()

    def _credit(self, db: Session, collection: str, token_id: int, owner: str, amount: int) -> None:
        row = self._balance_row(db, collection, token_id, owner)
        if row is None:
            db.add(TokenBalance(collection=collection, token_id=token_id, owner=owner, amount=amount))
        else:
            row.amount = row.amount + amount
        db.flush()

    def _next_token_id(self, db: Session, collection: str) -> int:
        mx = db.execute(
            select(func.max(Token.token_id)).where(Token.collection == collection)
        ).scalar_one_or_none()
        return int(mx or 0) + 1

    def _mint(
        self,
        db: Session,
        *,
        collection: str,
        to: str,
        creator: str,
        supply: int,
        uri: str,
        data: Optional[str],
    ) -> Token:
        if supply < 1:
            raise InvalidAsset("Minted supply must be at least 1.")
        token = Token(
            collection=collection,
            token_id=self._next_token_id(db, collection),
            creator=creator,
            uri=uri,
            supply=supply,
            data=data,
        )
        db.add(token)
        db.flush()
        self._credit(db, collection, token.token_id, to, supply)
        logger.info(
            "token minted collection=%s token_id=%s to=%s supply=%s",
            collection,
            token.token_id,
            to,
            supply,
        )
        return token

    # ─────────────────────────────────────────────
    # ISSUANCE
    # ─────────────────────────────────────────────

    def create_single(self, db: Session, *, collection: str, minter: str, to: str, uri: str) -> Token:
        dep = self._collection(db, collection)
        self._require_kind(dep, DeploymentKind.SINGLE_NFT)
        self.roles.require_role(db, scope=collection, role=Role.MINTER, account=minter)
        return self._mint(db, collection=collection, to=to, creator=to, supply=1, uri=uri, data=None)

    def create_multi(
        self,
        db: Session,
        *,
        collection: str,
        minter: str,
        to: str,
        amount: int,
        uri: str,
        data: Optional[str] = None,
    ) -> Token:
        dep = self._collection(db, collection)
        self._require_kind(dep, DeploymentKind.MULTI_NFT)
        self.roles.require_role(db, scope=collection, role=Role.MINTER, account=minter)
        return self._mint(db, collection=collection, to=to, creator=to, supply=amount, uri=uri, data=data)

    def issue_certificate(
        self,
        db: Session,
        *,
        collection: str,
        governor: str,
        to: str,
        creator: str,
        uri: str,
        data: Optional[str] = None,
    ) -> Token:
        dep = self._collection(db, collection)
        self._require_kind(dep, DeploymentKind.OWNERSHIP_CERTIFICATE)
        self.roles.require_role(db, scope=collection, role=Role.GOVERNOR, account=governor)
        return self._mint(db, collection=collection, to=to, creator=creator, supply=1, uri=uri, data=data)

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_token(self, db: Session, *, collection: str, token_id: int) -> Optional[Token]:
        return db.execute(
            select(Token).where(Token.collection == collection, Token.token_id == token_id)
        ).scalar_one_or_none()

    def token_exists(self, db: Session, *, collection: str, token_id: int) -> bool:
        return self.get_token(db, collection=collection, token_id=token_id) is not None

    def require_token(self, db: Session, *, collection: str, token_id: int) -> Token:
        token = self.get_token(db, collection=collection, token_id=token_id)
        if token is None:
            raise NotFound(f"Token {token_id} does not exist in {collection}.")
        return token

    def creator_of(self, db: Session, *, collection: str, token_id: int) -> str:
        return self.require_token(db, collection=collection, token_id=token_id).creator

    def balance_of(self, db: Session, *, collection: str, token_id: int, owner: str) -> int:
        row = db.execute(
            select(TokenBalance.amount).where(
                TokenBalance.collection == collection,
                TokenBalance.token_id == token_id,
                TokenBalance.owner == owner,
            )
        ).scalar_one_or_none()
        return int(row or 0)

    def holders_of(self, db: Session, *, collection: str, token_id: int) -> List[TokenBalance]:
        return list(
            db.execute(
                select(TokenBalance)
                .where(
                    TokenBalance.collection == collection,
                    TokenBalance.token_id == token_id,
                    TokenBalance.amount > 0,
                )
                .order_by(TokenBalance.owner.asc())
            ).scalars().all()
        )

    def owner_of(self, db: Session, *, collection: str, token_id: int) -> str:
        """
        Sole holder of a supply-1 token (single-edition or certificate).
        """
        dep = self._collection(db, collection)
        if dep.kind == DeploymentKind.MULTI_NFT.value:
            raise InvalidAsset("ownerOf is undefined for multi-edition collections; use balanceOf.")
        self.require_token(db, collection=collection, token_id=token_id)
        holders = self.holders_of(db, collection=collection, token_id=token_id)
        return holders[0].owner

    # ─────────────────────────────────────────────
    # APPROVALS / TRANSFERS
    # ─────────────────────────────────────────────

    def set_approval_for_all(
        self, db: Session, *, collection: str, owner: str, operator: str, approved: bool
    ) -> None:
        self._collection(db, collection)
        row = db.execute(
            select(OperatorApproval).where(
                OperatorApproval.collection == collection,
                OperatorApproval.owner == owner,
                OperatorApproval.operator == operator,
            )
        ).scalar_one_or_none()
        if row is None:
            db.add(OperatorApproval(collection=collection, owner=owner, operator=operator, approved=approved))
        else:
            row.approved = approved
        db.flush()

    def is_approved_for_all(self, db: Session, *, collection: str, owner: str, operator: str) -> bool:
        approved = db.execute(
            select(OperatorApproval.approved).where(
                OperatorApproval.collection == collection,
                OperatorApproval.owner == owner,
                OperatorApproval.operator == operator,
            )
        ).scalar_one_or_none()
        return bool(approved)

    def transfer(
        self,
        db: Session,
        *,
        collection: str,
        operator: str,
        from_: str,
        to: str,
        token_id: int,
        amount: int = 1,
    ) -> None:
        """
        Move `amount` of a token. Certificates only move by a governor of the
        certificate collection; other tokens by their holder or an approved operator.
        """
        dep = self._collection(db, collection)
        self.require_token(db, collection=collection, token_id=token_id)
        if amount < 1:
            raise InvalidAsset("Transfer amount must be at least 1.")

        if dep.kind == DeploymentKind.OWNERSHIP_CERTIFICATE.value:
            if not self.roles.has_role(db, scope=collection, role=Role.GOVERNOR, account=operator):
                raise Unauthorized("Ownership certificates move only by a governor.")
        elif operator != from_ and not self.is_approved_for_all(
            db, collection=collection, owner=from_, operator=operator
        ):
            raise Unauthorized(f"{operator} is not approved to move tokens of {from_}.")

        row = self._balance_row(db, collection, token_id, from_)
        held = row.amount if row else 0
        if held < amount:
            raise InvalidAsset(f"{from_} holds {held} of token {token_id}, cannot move {amount}.")
        row.amount = held - amount
        db.flush()
        self._credit(db, collection, token_id, to, amount)
        logger.info(
            "token transferred collection=%s token_id=%s from=%s to=%s amount=%s",
            collection,
            token_id,
            from_,
            to,
            amount,
        )
