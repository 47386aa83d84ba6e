"""
Shared fixtures for backend tests.

Nothing here talks to the network: the vision model and the verification
source are always replaced with mocks in the tests that need them.
"""
import json

import pytest


# ── Model replies ─────────────────────────────────────────────────────────────

@pytest.fixture
def milk_with_deposit_text():
    """Single ambiguous item followed by its deposit line."""
    return (
        '{"items":[{"name":"ORG MLK","price":12.5,"quantity":1,"needsVerification":true,'
        '"hasTax":false},{"name":"Deposit","price":0.5,"quantity":2,"needsVerification":false,'
        '"hasTax":false,"isAttachment":true,"attachmentType":"deposit"}],"total":13.5}'
    )


@pytest.fixture
def costco_text():
    """Fenced reply with two ambiguous names, a deposit and a discount."""
    body = json.dumps({
        "items": [
            {"name": "KS ORG MLK 1L", "price": 12.5, "quantity": 1,
             "needsVerification": True, "hasTax": False},
            {"name": "ORG BRD", "price": 8.0, "quantity": 1,
             "needsVerification": True, "hasTax": True, "taxAmount": 0.8},
            {"name": "Deposit", "price": 0.5, "quantity": 2, "needsVerification": False,
             "hasTax": False, "isAttachment": True, "attachmentType": "deposit"},
            {"name": "TPD", "price": 0.5, "quantity": 1, "needsVerification": False,
             "hasTax": False, "isAttachment": True, "attachmentType": "discount"},
            {"name": "Bananas", "price": 1.99, "quantity": 3,
             "needsVerification": False, "hasTax": False},
        ],
        "total": 27.77,
    })
    return f"```json\n{body}\n```"
