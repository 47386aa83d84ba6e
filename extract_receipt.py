"""
Extract the items from a receipt image from the command line.

Shows the three verification setups:

  python extract_receipt.py receipt.jpg                  automatic verification
  python extract_receipt.py receipt.jpg --no-verify      names as printed
  python extract_receipt.py receipt.jpg --lookup         automatic, then a local product table

Requires ANTHROPIC_API_KEY in the environment.
"""
import argparse
import asyncio
import os
import sys

# Make backend importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from models.schemas import ExtractOptions
from services.extract_service import extract_and_check
from services.verify_service import make_lookup_callback

# Local product table, consulted for names the automatic pass left unresolved
PRODUCT_TABLE = {
    "ORG MLK": "Organic Whole Milk 1L",
    "ORG BRD": "Organic Whole Wheat Bread",
    "APL": "Fuji Apples",
    "BAN": "Bananas",
}


def print_receipt(receipt, check):
    print(f"\n{'Item':<40}{'Qty':>6}{'Price':>10}")
    print("-" * 56)
    for item in receipt.items:
        print(f"{item.name[:39]:<40}{item.quantity:>6g}{item.price:>10.2f}")
        if item.tax_amount:
            print(f"{'  tax':<46}{item.tax_amount:>10.2f}")
        if item.deposit:
            print(f"{'  deposit':<46}{item.deposit:>10.2f}")
        if item.discount:
            print(f"{'  discount':<46}{item.discount:>10.2f}")
    print("-" * 56)
    print(f"{'Total':<46}{receipt.total:>10.2f}")
    print(check.message)


async def main():
    parser = argparse.ArgumentParser(description="Extract receipt items with Claude Vision")
    parser.add_argument("image", help="path or http(s) URL of the receipt image")
    parser.add_argument("--no-verify", action="store_true", help="skip automatic name verification")
    parser.add_argument("--lookup", action="store_true", help="resolve leftover names from PRODUCT_TABLE")
    args = parser.parse_args()

    if args.image.startswith(("http://", "https://")):
        image = args.image
    else:
        with open(args.image, "rb") as f:
            image = f.read()

    options = ExtractOptions(
        auto_verify=not args.no_verify,
        verify_callback=make_lookup_callback(PRODUCT_TABLE) if args.lookup else None,
    )
    receipt, check = await extract_and_check(image, options)
    print_receipt(receipt, check)


if __name__ == "__main__":
    asyncio.run(main())
