"""
Vehicle metadata stored alongside the telematics account.

Used to label analytics output and to enrich upstream device listings.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class VehicleDetails:
    """Stored document for one vehicle, keyed by device IMEI."""

    imei: str
    vehicle_no: Optional[str] = None
    vehicle_model: Optional[str] = None
    frame_no: Optional[str] = None
    battery_no: Optional[str] = None

    dealer_name: Optional[str] = None
    dealer_location: Optional[str] = None

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None

    bms_software: Optional[str] = None
    bms_hardware: Optional[str] = None

    sale_date: Optional[str] = None

    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        if self.vehicle_no and self.vehicle_model:
            return f"{self.vehicle_no} ({self.vehicle_model})"
        return self.vehicle_no or self.vehicle_model or self.imei

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "VehicleDetails":
        """
        Build from a stored document.

        Documents use the field names of the original vehicle collection
        (frameNumber, customerDetails.contact, bmsFirmwareVersion.software...).
        """
        imei = doc.get("imei")
        if imei is None or str(imei).strip() == "":
            raise ValueError("Vehicle document has no imei")

        customer = doc.get("customerDetails") or {}
        bms = doc.get("bmsFirmwareVersion") or {}
        known = {
            "imei", "vehicleNo", "vehicleModel", "frameNumber", "batteryNo",
            "dealerName", "location", "customerDetails", "bmsFirmwareVersion", "saleDate",
        }

        return cls(
            imei=str(imei),
            vehicle_no=doc.get("vehicleNo"),
            vehicle_model=doc.get("vehicleModel"),
            frame_no=doc.get("frameNumber"),
            battery_no=doc.get("batteryNo"),
            dealer_name=doc.get("dealerName"),
            dealer_location=doc.get("location"),
            customer_name=customer.get("name"),
            customer_phone=customer.get("contact"),
            customer_address=customer.get("address"),
            bms_software=bms.get("software"),
            bms_hardware=bms.get("hardware"),
            sale_date=doc.get("saleDate"),
            extra={k: v for k, v in doc.items() if k not in known},
        )
