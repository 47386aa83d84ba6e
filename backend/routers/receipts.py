"""
Receipts Router

POST /api/receipts/extract  — upload an image, return verified items + total
"""
import logging

from fastapi import APIRouter, File, UploadFile, HTTPException, Form

from models.schemas import ExtractOptions, ExtractionResult
from services.extract_service import extract_and_check
from services.response_parser import ParseError
from services.vision_service import OracleError

logger = logging.getLogger("receiptscan.api")
router = APIRouter()


@router.post("/extract", response_model=ExtractionResult)
async def extract_receipt(
    file: UploadFile = File(...),
    auto_verify: bool = Form(True),
):
    """
    Run the vision model over an uploaded receipt image and return its items.
    Nothing is stored.
    """
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        receipt, check = await extract_and_check(contents, ExtractOptions(auto_verify=auto_verify))
    except ParseError as e:
        logger.warning("Unparseable model reply for %s: %s", file.filename, e.reason)
        raise HTTPException(status_code=422, detail=f"Could not parse receipt: {e.reason}")
    except OracleError as e:
        raise HTTPException(status_code=502, detail=f"Extraction failed: {e}")

    return ExtractionResult(
        items=receipt.items,
        total=receipt.total,
        total_check=check,
    )
