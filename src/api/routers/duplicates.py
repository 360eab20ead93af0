from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from models import get_db
from models.schemas import DuplicatePairResponse, MergeProductsRequest, MergeProductsResponse
from services.errors import InvalidMergeError, MergeFailedError, ProductNotFoundError
from services.product_dedup import find_duplicates
from services.product_merge import merge_products

router = APIRouter()


@router.get("/duplicates", response_model=List[DuplicatePairResponse])
async def list_duplicate_products(
    threshold: Optional[float] = Query(None, ge=0.0, le=1.0, description="Minimum name similarity"),
    db: Session = Depends(get_db),
) -> List[DuplicatePairResponse]:
    candidates = find_duplicates(db, threshold)
    return [
        DuplicatePairResponse(
            product_id_a=c.product_id_a,
            product_id_b=c.product_id_b,
            brand_id=c.brand_id,
            similarity=c.similarity,
        )
        for c in candidates
    ]


@router.post("/merge", response_model=MergeProductsResponse)
async def merge_duplicate_products(
    request: MergeProductsRequest,
    db: Session = Depends(get_db),
) -> MergeProductsResponse:
    try:
        success = merge_products(db, request.keep_id, request.delete_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidMergeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MergeFailedError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return MergeProductsResponse(
        success=success,
        keep_id=request.keep_id,
        delete_id=request.delete_id,
    )
