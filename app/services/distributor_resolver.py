from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.crud.distributors import find_by_keys
from app.models.distributors import Distributor
from app.models.orders import Order

logger = logging.getLogger(__name__)

DistributorKey = tuple[str, str]


class CredentialDecodeError(ValueError):
    pass


def encode_credential(token: str | None) -> str | None:
    """Reversible base64 encoding used for stored access tokens. Not encryption."""
    text = (token or "").strip()
    if not text:
        return None
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_credential(encoded: str | None) -> str | None:
    text = (encoded or "").strip()
    if not text:
        return None
    try:
        return base64.b64decode(text.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as exc:
        raise CredentialDecodeError("Stored access token is not valid base64.") from exc


def distributor_key(order: Order) -> DistributorKey | None:
    studio_id = (order.studio_id or "").strip()
    company_id = (order.qw_company_id or "").strip()
    if not studio_id or not company_id:
        return None
    return studio_id, company_id


def partition_pending_orders(
    orders: Iterable[Order],
) -> tuple[dict[DistributorKey, list[Order]], list[Order]]:
    """
    Groups pending orders by (studio_id, qw_company_id). Orders missing either
    half of the key come back in the second list instead of being dropped.
    Already-booked orders are ignored.
    """
    partitions: dict[DistributorKey, list[Order]] = {}
    skipped: list[Order] = []
    for order in orders:
        if not order.is_pending:
            continue
        key = distributor_key(order)
        if key is None:
            skipped.append(order)
            continue
        partitions.setdefault(key, []).append(order)
    return partitions, skipped


@dataclass
class DistributorPartition:
    key: DistributorKey
    orders: list[Order]
    distributor: Distributor | None = None
    token: str | None = field(default=None, repr=False)
    failure_reason: str | None = None

    @property
    def label(self) -> str:
        if self.distributor is not None and self.distributor.studio_name:
            return self.distributor.studio_name
        for order in self.orders:
            if order.studio_name:
                return order.studio_name
        return self.key[0]

    @property
    def is_ready(self) -> bool:
        return self.token is not None and self.failure_reason is None


def resolve_partitions(
    db: Session,
    partitions: dict[DistributorKey, list[Order]],
) -> list[DistributorPartition]:
    """
    Attaches each partition's distributor record and decoded token. A missing
    record or empty credential marks only that partition as failed.
    """
    records = find_by_keys(db, partitions.keys())
    resolved: list[DistributorPartition] = []
    for key in sorted(partitions.keys()):
        partition = DistributorPartition(key=key, orders=partitions[key])
        distributor = records.get(key)
        partition.distributor = distributor
        if distributor is None:
            partition.failure_reason = "no distributor record"
        elif not distributor.has_credential:
            partition.failure_reason = "no access token configured"
        else:
            try:
                partition.token = decode_credential(distributor.qw_pat_encrypted)
            except CredentialDecodeError as exc:
                partition.failure_reason = str(exc)
        if partition.failure_reason:
            logger.warning(
                "distributor_unresolved studio_id=%s qw_company_id=%s reason=%s",
                key[0],
                key[1],
                partition.failure_reason,
            )
        resolved.append(partition)
    return resolved


def credentials_for_orders(db: Session, orders: Iterable[Order]) -> list[tuple[str, str]]:
    """(label, decoded token) for each distributor appearing on the given orders."""
    keys = {key for key in (distributor_key(o) for o in orders) if key is not None}
    records = find_by_keys(db, keys)
    credentials: list[tuple[str, str]] = []
    for key in sorted(records.keys()):
        distributor = records[key]
        try:
            token = decode_credential(distributor.qw_pat_encrypted)
        except CredentialDecodeError:
            logger.warning(
                "distributor_credential_invalid studio_id=%s qw_company_id=%s",
                key[0],
                key[1],
            )
            continue
        if token:
            credentials.append((distributor.studio_name or key[0], token))
    return credentials
