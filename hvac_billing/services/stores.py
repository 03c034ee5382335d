"""
Record Stores

CRUD over one storage slot per collection. Each operation reads the
whole collection, changes it in memory and writes it back. There is no
locking: two writers working from the same read lose the earlier write.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from hvac_billing.models.domain import (
    Customer,
    Invoice,
    LineItem,
    LineItemDraft,
    PaymentStatus,
    ServiceOrder,
    ServiceStatus,
    Technician,
)
from hvac_billing.services.tax import aggregate, build_line_item, recompute_line_item
from hvac_billing.utils.errors import StorageUnavailable, ValidationError
from hvac_billing.utils.storage import KeyValueStorage, get_storage

logger = logging.getLogger(__name__)

CUSTOMERS_KEY = "saved_customers"
TECHNICIANS_KEY = "saved_technicians"
SERVICES_KEY = "saved_services"
INVOICES_KEY = "saved_bills"

ModelT = TypeVar("ModelT", bound=BaseModel)

PROTECTED_FIELDS = ("id", "created_at")
DERIVED_INVOICE_FIELDS = ("subtotal", "tax_total", "grand_total")


def new_record_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_validation_error(error: PydanticValidationError) -> ValidationError:
    """Convert a pydantic error into the package's ValidationError"""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    return ValidationError(f"{field}: {first.get('msg')}" if field else first.get("msg"), field=field)


class RecordStore(Generic[ModelT]):
    """CRUD over the JSON array held in one storage slot"""
    
    def __init__(self, key: str, model: Type[ModelT], storage: Optional[KeyValueStorage] = None):
        self.key = key
        self.model = model
        self.storage = storage if storage is not None else get_storage()
    
    # ------------------------------------------------------------------
    # Slot I/O
    # ------------------------------------------------------------------
    
    def read_raw(self) -> List[Dict[str, Any]]:
        """Raw rows of the slot, without model validation"""
        raw = self.storage.get(self.key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error(f"Slot '{self.key}' holds {type(raw).__name__}, expected a list")
            raise StorageUnavailable(f"Slot '{self.key}' is corrupt", key=self.key)
        return raw
    
    def _read(self) -> List[ModelT]:
        rows = self.read_raw()
        try:
            return [self.model.model_validate(row) for row in rows]
        except PydanticValidationError as e:
            logger.error(f"Slot '{self.key}' holds an invalid {self.model.__name__}: {e}")
            raise StorageUnavailable(f"Slot '{self.key}' is corrupt: {e}", key=self.key) from e
    
    def dump(self, records: List[ModelT]) -> List[Dict[str, Any]]:
        return [record.model_dump(mode="json") for record in records]
    
    def _write(self, records: List[ModelT]):
        self.storage.set(self.key, self.dump(records))
    
    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    
    def build(self, data: Union[Dict[str, Any], BaseModel]) -> ModelT:
        """Validate data into a new record with a fresh id and timestamp"""
        if isinstance(data, BaseModel):
            data = data.model_dump()
        fields = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        try:
            return self.model.model_validate({
                **fields,
                "id": new_record_id(),
                "created_at": utc_now(),
            })
        except PydanticValidationError as e:
            raise to_validation_error(e) from e
    
    def create(self, data: Union[Dict[str, Any], BaseModel]) -> ModelT:
        """Append a new record and return it"""
        record = self.build(data)
        records = self._read()
        records.append(record)
        self._write(records)
        logger.info(f"Created {self.model.__name__} {record.id} in '{self.key}'")
        return record
    
    def list(self) -> List[ModelT]:
        """All records in insertion order"""
        return self._read()
    
    def iter_records(self) -> Iterator[ModelT]:
        """Read-only iteration over the collection"""
        return iter(self._read())
    
    def get_by_id(self, record_id: str) -> Optional[ModelT]:
        for record in self._read():
            if record.id == record_id:
                return record
        return None
    
    def update(self, record_id: str, changes: Dict[str, Any]) -> bool:
        """
        Merge changes into a record.
        
        Returns False when no record has this id. id and created_at
        cannot be changed; the merged record is validated again.
        """
        records = self._read()
        for index, record in enumerate(records):
            if record.id != record_id:
                continue
            merged = record.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in PROTECTED_FIELDS})
            try:
                records[index] = self.model.model_validate(merged)
            except PydanticValidationError as e:
                raise to_validation_error(e) from e
            self._write(records)
            logger.info(f"Updated {self.model.__name__} {record_id}: {sorted(changes)}")
            return True
        return False
    
    def delete(self, record_id: str) -> bool:
        records = self._read()
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            return False
        self._write(remaining)
        logger.info(f"Deleted {self.model.__name__} {record_id} from '{self.key}'")
        return True
    
    def replace_all(self, records: List[ModelT]):
        """Overwrite the whole collection"""
        self._write(records)


class StatusRecordStore(RecordStore[ModelT]):
    """Store whose records carry a status enum"""
    
    status_enum: Type[Enum]
    
    def coerce_status(self, status: Union[str, Enum]) -> Enum:
        try:
            return self.status_enum(status)
        except ValueError:
            allowed = ", ".join(member.value for member in self.status_enum)
            raise ValidationError(f"Unknown status '{status}', expected one of: {allowed}", field="status")
    
    def set_status(self, record_id: str, status: Union[str, Enum]) -> bool:
        return self.update(record_id, {"status": self.coerce_status(status)})


class InvoiceStore(StatusRecordStore[Invoice]):
    status_enum = PaymentStatus
    
    def __init__(self, storage: Optional[KeyValueStorage] = None):
        super().__init__(INVOICES_KEY, Invoice, storage)
    
    def update(self, record_id: str, changes: Dict[str, Any]) -> bool:
        """
        Merge changes into an invoice.
        
        Totals are never written directly. New items are computed
        again (form lines through build_line_item, computed lines
        through recompute_line_item) and the totals follow from them.
        """
        derived = sorted(set(changes) & set(DERIVED_INVOICE_FIELDS))
        if derived:
            raise ValidationError(
                f"{', '.join(derived)} are computed from the line items", field=derived[0]
            )
        if "items" not in changes:
            return super().update(record_id, changes)
        
        items = []
        for index, line in enumerate(changes["items"] or []):
            try:
                if isinstance(line, LineItem):
                    items.append(recompute_line_item(line))
                else:
                    draft = LineItemDraft.model_validate(line)
                    items.append(build_line_item(draft, sno=str(index + 1)))
            except PydanticValidationError as e:
                raise ValidationError(f"Line {index + 1}: {e}", field=f"items.{index}") from e
            except ValidationError as e:
                field = f"items.{index}.{e.field}" if e.field else f"items.{index}"
                raise ValidationError(f"Line {index + 1}: {e}", field=field) from e
        totals = aggregate(items)
        return super().update(record_id, {
            **changes,
            "items": items,
            "subtotal": totals.subtotal,
            "tax_total": totals.tax,
            "grand_total": totals.total,
        })


class ServiceOrderStore(StatusRecordStore[ServiceOrder]):
    status_enum = ServiceStatus
    
    def __init__(self, storage: Optional[KeyValueStorage] = None):
        super().__init__(SERVICES_KEY, ServiceOrder, storage)


def customer_store(storage: Optional[KeyValueStorage] = None) -> RecordStore[Customer]:
    return RecordStore(CUSTOMERS_KEY, Customer, storage)


def technician_store(storage: Optional[KeyValueStorage] = None) -> RecordStore[Technician]:
    return RecordStore(TECHNICIANS_KEY, Technician, storage)


def service_store(storage: Optional[KeyValueStorage] = None) -> ServiceOrderStore:
    return ServiceOrderStore(storage)


def invoice_store(storage: Optional[KeyValueStorage] = None) -> InvoiceStore:
    return InvoiceStore(storage)
