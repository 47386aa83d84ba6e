"""Prompt text sent to the vision model."""

EXTRACTION_PROMPT = """Analyze this shopping receipt image and extract every purchased item and the receipt total.

Output ONLY a JSON object with two fields (no prose, no markdown):
{
  "items": [...],
  "total": 123.45
}

Each item has:
- name: item name as printed (string)
- price: unit price (number)
- quantity: number of units (number, default 1)
- needsVerification: whether the name needs verification (boolean)
- hasTax: whether the item is taxed (boolean)
- taxAmount: tax charged for the item (number, optional)

TAX MARKERS (warehouse-club receipts):
- If the name is followed by an "H" or "A" tax flag (e.g. "ORG MLK H"), set hasTax = true, otherwise false.
- Drop the trailing flag from the name itself.
- If the receipt prints a tax amount for the item, put it in taxAmount.

needsVerification — when unsure, prefer true. Set true when the name:
- is abbreviated ("ORG MLK", "VEG", "FRZ")
- is truncated ("CHOCO...")
- mixes letters and digits with unclear meaning ("CEMOI 6X", "KS 12X")
- contains brand abbreviations or item codes
- names only a category ("BREAD", "DRINK")
- is in any way ambiguous
Set false only when the name is complete, unabbreviated and a shopper would
recognise the product immediately ("Coca-Cola Bottle 330ml").

ATTACHMENTS — deposits (Deposit, DEP, bottle deposit) and discounts (TPD, coupon, instant savings):
- add "isAttachment": true and "attachmentType": "deposit" or "discount"
- place the attachment IMMEDIATELY after the item it belongs to
- report discounts as a POSITIVE amount in price
- attachments are merged into the preceding item and never returned on their own

Ordering:
- Item A
- Item A deposit (if any)
- Item A discount (if any)
- Item B
- ...

TOTAL:
- Use the amount printed next to "TOTAL" (or "AMOUNT", "BALANCE DUE") at the bottom.
- This is the final amount paid.

Example — a receipt showing:
- "KS ORG MLK 1L"  12.50
- "ORG BRD H"       8.00 (tax 0.80), bottle deposit 2 @ 0.50, TPD 0.50
- "CEMOI 6X H"     15.00
- "KS APPLE" 3 @ 4.50
- TOTAL 50.30

Output:
{
  "items": [
    {"name": "KS ORG MLK 1L", "price": 12.5, "quantity": 1, "needsVerification": true, "hasTax": false},
    {"name": "ORG BRD", "price": 8.0, "quantity": 1, "needsVerification": true, "hasTax": true, "taxAmount": 0.8},
    {"name": "Deposit", "price": 0.5, "quantity": 2, "needsVerification": false, "hasTax": false, "isAttachment": true, "attachmentType": "deposit"},
    {"name": "TPD", "price": 0.5, "quantity": 1, "needsVerification": false, "hasTax": false, "isAttachment": true, "attachmentType": "discount"},
    {"name": "CEMOI 6X", "price": 15.0, "quantity": 1, "needsVerification": true, "hasTax": true},
    {"name": "KS APPLE", "price": 4.5, "quantity": 3, "needsVerification": true, "hasTax": false}
  ],
  "total": 50.30
}"""
