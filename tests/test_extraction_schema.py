import json
from decimal import Decimal

import pytest

from schemas.extraction import SOURCE_DEFAULT, CanonicalFields, FieldStatus, FieldValue


def test_field_value_tri_state():
    assert FieldValue.not_found().status is FieldStatus.NOT_FOUND
    assert FieldValue.of("0", "x").status is FieldStatus.ZERO
    assert FieldValue.of(12, "x").status is FieldStatus.VALUE

    with pytest.raises(ValueError):
        FieldValue.of(-1, "x")


def test_not_found_has_no_implicit_number():
    missing = FieldValue.not_found()
    assert missing.as_number() is None
    assert missing.as_number(Decimal(0)) == Decimal(0)
    assert FieldValue.of("4.5", "x").as_number(Decimal(0)) == Decimal("4.5")


def test_default_source_is_not_evidence():
    fields = CanonicalFields(
        total_sales_count=FieldValue.of(10, "fiserv:card_type_total"),
        tc15_count=FieldValue.zero(SOURCE_DEFAULT),
    )
    assert fields.resolved_count() == 2
    assert fields.evidence_count() == 1
    assert "visa_txn_count" in fields.missing()


def test_json_uses_camel_case_and_plain_numbers():
    fields = CanonicalFields(
        total_sales_count=FieldValue.of(40, "csv:column:sales count"),
        fraud_amount_usd=FieldValue.of("12.50", "csv:column:fraud amount"),
    )
    payload = json.loads(fields.model_dump_json(by_alias=True))

    assert payload["totalSalesCount"]["value"] == 40
    assert payload["fraudAmountUSD"]["value"] == 12.5
    assert payload["cnpTxnCount"] == {"status": "not_found", "value": None, "source": None}
