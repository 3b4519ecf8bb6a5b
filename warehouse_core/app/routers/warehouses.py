from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, http_error
from ..errors import InventoryError
from ..schemas import (
    StorageLocationCreate, StorageLocationFilter, StorageLocationOut,
    StorageLocationUpdate, WarehouseCreate, WarehouseFilter, WarehouseOut,
    WarehouseUpdate,
)
from ..services import StorageLocationService, WarehouseService

router = APIRouter(prefix="/api/v1/warehouse", tags=["Warehouses"])


# =============================================================================
# WAREHOUSES
# =============================================================================

@router.post("/warehouses", response_model=WarehouseOut, status_code=201)
def create_warehouse(request: WarehouseCreate, db: Session = Depends(get_db)):
    try:
        return WarehouseService.create(db, request)
    except InventoryError as e:
        raise http_error(e)


@router.get("/warehouses", response_model=List[WarehouseOut])
def list_warehouses(filters: WarehouseFilter = Depends(), db: Session = Depends(get_db)):
    return WarehouseService.list_warehouses(db, filters)


@router.get("/warehouses/{warehouse_id}", response_model=WarehouseOut)
def get_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        return WarehouseService.get(db, warehouse_id)
    except InventoryError as e:
        raise http_error(e)


@router.patch("/warehouses/{warehouse_id}", response_model=WarehouseOut)
def update_warehouse(warehouse_id: int, request: WarehouseUpdate, db: Session = Depends(get_db)):
    try:
        return WarehouseService.update(db, warehouse_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.delete("/warehouses/{warehouse_id}", status_code=204)
def delete_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        WarehouseService.delete(db, warehouse_id)
    except InventoryError as e:
        raise http_error(e)


# =============================================================================
# STORAGE LOCATIONS
# =============================================================================

@router.post("/locations", response_model=StorageLocationOut, status_code=201)
def create_storage_location(request: StorageLocationCreate, db: Session = Depends(get_db)):
    try:
        return StorageLocationService.create(db, request)
    except InventoryError as e:
        raise http_error(e)


@router.get("/locations", response_model=List[StorageLocationOut])
def list_storage_locations(filters: StorageLocationFilter = Depends(), db: Session = Depends(get_db)):
    return StorageLocationService.list_locations(db, filters)


@router.get("/locations/{location_id}", response_model=StorageLocationOut)
def get_storage_location(location_id: int, db: Session = Depends(get_db)):
    try:
        return StorageLocationService.get(db, location_id)
    except InventoryError as e:
        raise http_error(e)


@router.patch("/locations/{location_id}", response_model=StorageLocationOut)
def update_storage_location(location_id: int, request: StorageLocationUpdate, db: Session = Depends(get_db)):
    try:
        return StorageLocationService.update(db, location_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.delete("/locations/{location_id}", status_code=204)
def delete_storage_location(location_id: int, db: Session = Depends(get_db)):
    try:
        StorageLocationService.delete(db, location_id)
    except InventoryError as e:
        raise http_error(e)
