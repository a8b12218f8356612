"""
Vehicle Repository - serves stored vehicle metadata keyed by IMEI.

Currently reads from a JSON document file. The lookup contract (get by
IMEI, list, merge over upstream device records) is what the API depends on,
so the storage can be swapped for a database without touching routes.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from fleet_analytics.models.vehicle import VehicleDetails


logger = logging.getLogger(__name__)


# Upstream device field -> stored vehicle attribute
DEVICE_FIELD_MAP = {
    "vehicleNo": "vehicle_no",
    "vehicleModel": "vehicle_model",
    "frameNo": "frame_no",
    "batteryNo": "battery_no",
    "dealerName": "dealer_name",
    "dealerLocation": "dealer_location",
    "customerName": "customer_name",
    "customerPhone": "customer_phone",
    "customerAddress": "customer_address",
    "bmsSoftware": "bms_software",
    "bmsHardware": "bms_hardware",
    "saleDate": "sale_date",
}


class VehicleRepository:
    """
    Repository for vehicle metadata.

    The JSON file holds either a list of vehicle documents or an object
    with a "vehicles" list.
    """

    def __init__(self, source_file: Optional[Path] = None):
        """
        Initialize the repository.

        Args:
            source_file: JSON document file. If None, the repository is empty.
        """
        self._source_file: Optional[Path] = source_file
        self._vehicles: dict[str, VehicleDetails] = {}

        if source_file is not None:
            self.load(source_file)

    @property
    def source_file(self) -> Optional[Path]:
        return self._source_file

    def __len__(self) -> int:
        return len(self._vehicles)

    def load(self, source_file: Path) -> int:
        """
        Load vehicle documents from a JSON file, replacing current contents.

        Args:
            source_file: Path to the JSON file

        Returns:
            Number of vehicles loaded
        """
        self._source_file = source_file
        self._vehicles.clear()

        if not source_file.exists():
            logger.warning(f"Vehicle file does not exist: {source_file}")
            return 0

        try:
            with open(source_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read vehicle file {source_file}: {e}")
            return 0

        documents = data.get("vehicles", []) if isinstance(data, dict) else data
        if not isinstance(documents, list):
            logger.error(f"Vehicle file {source_file} has no vehicle list")
            return 0

        for doc in documents:
            if not isinstance(doc, dict):
                logger.warning(f"Skipping non-object vehicle document in {source_file}")
                continue
            try:
                vehicle = VehicleDetails.from_document(doc)
            except ValueError as e:
                logger.warning(f"Skipping vehicle document: {e}")
                continue
            self._vehicles[vehicle.imei] = vehicle

        logger.info(f"Loaded {len(self._vehicles)} vehicles from {source_file}")
        return len(self._vehicles)

    def reload(self) -> int:
        """Re-read the current source file."""
        if self._source_file is None:
            return 0
        return self.load(self._source_file)

    def add(self, vehicle: VehicleDetails) -> None:
        self._vehicles[vehicle.imei] = vehicle

    def get(self, imei: str) -> Optional[VehicleDetails]:
        return self._vehicles.get(str(imei))

    def list_vehicles(self) -> list[VehicleDetails]:
        return sorted(self._vehicles.values(), key=lambda v: v.imei)

    def merge_device(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Overlay stored metadata on an upstream device record.

        Stored values win where they are non-empty; everything else from the
        upstream record is kept as is.
        """
        imei = record.get("imei")
        vehicle = self.get(imei) if imei is not None else None
        if vehicle is None:
            return dict(record)

        merged = dict(record)
        for device_field, attr in DEVICE_FIELD_MAP.items():
            stored = getattr(vehicle, attr)
            if stored:
                merged[device_field] = stored
        return merged


# Global repository instance (set up by app initialization)
_repository: Optional[VehicleRepository] = None


def get_repository() -> VehicleRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = VehicleRepository()
    return _repository


def init_repository(source_file: Optional[Path]) -> VehicleRepository:
    """Initialize the global repository with a vehicle file."""
    global _repository
    _repository = VehicleRepository(source_file)
    return _repository
