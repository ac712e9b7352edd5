"""API routes for brands."""

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from brandoffers.api.common import MAX_PAGE_SIZE, ApiModel, get_brand_registry
from brandoffers.services import BrandRegistry

router = APIRouter(prefix="/brands", tags=["brands"])


class BrandResponse(ApiModel):
    id: str
    name: str
    description: str
    created_at: str
    updated_at: str


class BrandPage(ApiModel):
    items: list[BrandResponse]
    next_cursor: str | None = None


class BrandCreateRequest(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class BrandUpdateRequest(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None


@router.get("", response_model=BrandPage)
async def list_brands(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    cursor: str | None = Query(None),
    brands: BrandRegistry = Depends(get_brand_registry),
):
    return BrandPage.model_validate(await brands.list(limit, cursor))


@router.post("", response_model=BrandResponse, status_code=201)
async def create_brand(
    data: BrandCreateRequest,
    brands: BrandRegistry = Depends(get_brand_registry),
):
    return await brands.create(data.name, data.description)


@router.get("/{brand_id}", response_model=BrandResponse)
async def get_brand(brand_id: str, brands: BrandRegistry = Depends(get_brand_registry)):
    return await brands.get(brand_id)


@router.put("/{brand_id}", response_model=BrandResponse)
async def update_brand(
    brand_id: str,
    data: BrandUpdateRequest,
    brands: BrandRegistry = Depends(get_brand_registry),
):
    return await brands.update(brand_id, name=data.name, description=data.description)


@router.delete("/{brand_id}", status_code=204)
async def delete_brand(brand_id: str, brands: BrandRegistry = Depends(get_brand_registry)):
    await brands.delete(brand_id)
