
"""Create the warehouse tables and optionally seed a first warehouse.

Usage:
  python scripts/init_db.py
  python scripts/init_db.py --warehouse-code WH-01 --warehouse-name "Main Store" --location-code WH-01-A1
Or provide via env: SEED_WAREHOUSE_CODE, SEED_WAREHOUSE_NAME, SEED_LOCATION_CODE
"""
import os
import argparse

from warehouse_core.app.db import SessionLocal, create_db_and_tables
from warehouse_core.app.errors import ConflictError
from warehouse_core.app.logging_config import configure_logging
from warehouse_core.app.schemas import StorageLocationCreate, WarehouseCreate
from warehouse_core.app.services import StorageLocationService, WarehouseService


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--warehouse-code')
    parser.add_argument('--warehouse-name')
    parser.add_argument('--location-code')
    args = parser.parse_args()

    warehouse_code = args.warehouse_code or os.getenv('SEED_WAREHOUSE_CODE')
    warehouse_name = args.warehouse_name or os.getenv('SEED_WAREHOUSE_NAME') or warehouse_code
    location_code = args.location_code or os.getenv('SEED_LOCATION_CODE')

    configure_logging()
    create_db_and_tables()
    print('Tables ready')

    if not warehouse_code:
        return

    db = SessionLocal()
    try:
        try:
            warehouse = WarehouseService.create(
                db, WarehouseCreate(code=warehouse_code, name=warehouse_name)
            )
            print('Created warehouse:', warehouse.code)
        except ConflictError:
            print('Warehouse already exists:', warehouse_code)
            return

        if location_code:
            location = StorageLocationService.create(
                db, StorageLocationCreate(location_code=location_code, warehouse_id=warehouse.id)
            )
            print('Created storage location:', location.location_code)
    finally:
        db.close()


if __name__ == '__main__':
    main()
