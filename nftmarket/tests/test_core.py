import json
import logging

from nftmarket.core.config import get_settings
from nftmarket.core.hashing import LEDGER_DOMAIN, hash_chain, payload_digest, sha256_hex
from nftmarket.core.logging import build_formatter
from nftmarket.models.enums import ListingState


def test_payload_digest_ignores_key_order():
    a = {"listing_id": 1, "buyer": "0x01", "amount": 10**30}
    b = {"amount": 10**30, "buyer": "0x01", "listing_id": 1}
    assert payload_digest(a) == payload_digest(b)
    assert payload_digest({"state": ListingState.SOLD}) == payload_digest({"state": "SOLD"})


def test_hash_chain_depends_on_previous_hash_and_domain():
    payload = {"entry_type": "SALE_SETTLED", "listing_id": 1}
    genesis = "0" * 64

    first = hash_chain(genesis, payload)
    assert first != hash_chain("f" * 64, payload)
    assert first != payload_digest(payload)
    assert first == sha256_hex(f"{LEDGER_DOMAIN}|{genesis}|" + '{"entry_type":"SALE_SETTLED","listing_id":1}')


def test_log_lines_carry_service_and_market_fields():
    settings = get_settings()
    record = logging.makeLogRecord(
        {
            "name": "nftmarket.services.settlement_service",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": "listing settled id=%s",
            "args": (7,),
            "marketplace": "0x00000000000000000000000000000000000000aa",
            "listing_id": 7,
        }
    )

    line = json.loads(build_formatter(settings).format(record))

    assert line["message"] == "listing settled id=7"
    assert line["level"] == "INFO"
    assert line["logger"] == "nftmarket.services.settlement_service"
    assert line["service"] == settings.app_name
    assert line["environment"] == settings.environment
    assert (line["marketplace"], line["listing_id"]) == ("0x00000000000000000000000000000000000000aa", 7)
