"""
Warehouse & storage location registry.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..errors import ConflictError, InventoryError, NotFoundError
from ..logging_config import get_logger
from ..models import LocationStatus, StorageLocation, Warehouse
from ..schemas import (
    StorageLocationCreate, StorageLocationFilter, StorageLocationUpdate,
    WarehouseCreate, WarehouseFilter, WarehouseUpdate,
)
from .transactions import atomic

logger = get_logger(__name__)


class WarehouseService:

    @staticmethod
    def create(db: Session, data: WarehouseCreate) -> Warehouse:
        with atomic(db):
            if db.query(Warehouse).filter(Warehouse.code == data.code).first():
                raise ConflictError(f"Warehouse with code {data.code} already exists")
            warehouse = Warehouse(**data.model_dump())
            db.add(warehouse)
            db.flush()
            logger.info("warehouse_created", code=warehouse.code)
        return warehouse

    @staticmethod
    def list_warehouses(db: Session, filters: Optional[WarehouseFilter] = None) -> List[Warehouse]:
        filters = filters or WarehouseFilter()
        query = db.query(Warehouse)
        if filters.site_id is not None:
            query = query.filter(Warehouse.site_id == filters.site_id)
        if filters.status is not None:
            query = query.filter(Warehouse.status == filters.status)
        if filters.type is not None:
            query = query.filter(Warehouse.type == filters.type)
        return query.order_by(Warehouse.code.asc()).all()

    @staticmethod
    def get(db: Session, warehouse_id: int) -> Warehouse:
        warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    @staticmethod
    def update(db: Session, warehouse_id: int, data: WarehouseUpdate) -> Warehouse:
        with atomic(db):
            warehouse = WarehouseService.get(db, warehouse_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(warehouse, field, value)
        return warehouse

    @staticmethod
    def delete(db: Session, warehouse_id: int) -> None:
        """Refused while the warehouse still has storage locations"""
        with atomic(db):
            warehouse = WarehouseService.get(db, warehouse_id)
            in_use = db.query(StorageLocation).filter(
                StorageLocation.warehouse_id == warehouse_id
            ).count()
            if in_use:
                raise InventoryError("Cannot delete warehouse with existing storage locations")
            db.delete(warehouse)
        logger.info("warehouse_deleted", warehouse_id=warehouse_id)


class StorageLocationService:

    @staticmethod
    def create(db: Session, data: StorageLocationCreate) -> StorageLocation:
        with atomic(db):
            if db.query(StorageLocation).filter(
                StorageLocation.location_code == data.location_code
            ).first():
                raise ConflictError(f"Storage location with code {data.location_code} already exists")
            WarehouseService.get(db, data.warehouse_id)

            location = StorageLocation(**data.model_dump())
            db.add(location)
            db.flush()
            logger.info("storage_location_created", location_code=location.location_code,
                        warehouse_id=location.warehouse_id)
        return location

    @staticmethod
    def list_locations(db: Session, filters: Optional[StorageLocationFilter] = None) -> List[StorageLocation]:
        filters = filters or StorageLocationFilter()
        query = db.query(StorageLocation)
        if filters.warehouse_id is not None:
            query = query.filter(StorageLocation.warehouse_id == filters.warehouse_id)
        if filters.status is not None:
            query = query.filter(StorageLocation.status == filters.status)
        if filters.type is not None:
            query = query.filter(StorageLocation.type == filters.type)
        return query.order_by(StorageLocation.location_code.asc()).all()

    @staticmethod
    def get(db: Session, location_id: int) -> StorageLocation:
        location = db.query(StorageLocation).filter(StorageLocation.id == location_id).first()
        if not location:
            raise NotFoundError("Storage location", location_id)
        return location

    @staticmethod
    def update(db: Session, location_id: int, data: StorageLocationUpdate) -> StorageLocation:
        with atomic(db):
            location = StorageLocationService.get(db, location_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(location, field, value)
        return location

    @staticmethod
    def delete(db: Session, location_id: int) -> None:
        """Refused while the location is OCCUPIED"""
        with atomic(db):
            location = StorageLocationService.get(db, location_id)
            if location.status == LocationStatus.OCCUPIED:
                raise InventoryError("Cannot delete occupied storage location")
            db.delete(location)
        logger.info("storage_location_deleted", location_id=location_id)
