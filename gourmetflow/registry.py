"""CRUD routers for the plain back-office registries."""

from typing import Callable, List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlmodel import Session, SQLModel

from . import crud, schemas
from .deps import SessionDep, get_or_404, verify_access_key
from .models import Category, Courier, DiningTable, Expense, InventoryItem, Supplier


def registry_router(
    *,
    prefix: str,
    label: str,
    model: Type[SQLModel],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    read_schema: Type[BaseModel],
    lister: Callable[[Session], List[SQLModel]],
    creator: Optional[Callable[[Session, dict], SQLModel]] = None,
    deleter: Optional[Callable[[Session, SQLModel], None]] = None,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")], dependencies=[Depends(verify_access_key)])
    create = creator or (lambda session, data: crud.create_record(session, model, data))
    delete = deleter or crud.delete_record

    @router.get("", response_model=List[read_schema])
    def list_records(session: SessionDep):
        return lister(session)

    @router.get("/{record_id}", response_model=read_schema)
    def get_record(record_id: int, session: SessionDep):
        return get_or_404(session, model, record_id, label)

    @router.post("", response_model=read_schema, status_code=status.HTTP_201_CREATED)
    def create_record(payload: create_schema, session: SessionDep):  # type: ignore[valid-type]
        data = payload.model_dump(exclude_unset=True)
        try:
            return create(session, data)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    @router.put("/{record_id}", response_model=read_schema)
    def update_record(record_id: int, payload: update_schema, session: SessionDep):  # type: ignore[valid-type]
        record = get_or_404(session, model, record_id, label)
        updates = payload.model_dump(exclude_unset=True)
        if not updates:
            return record
        try:
            return crud.update_record(session, record, updates, skip_none=False)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_record(record_id: int, session: SessionDep):
        record = get_or_404(session, model, record_id, label)
        try:
            delete(session, record)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


def _create_expense(session: Session, data: dict) -> Expense:
    if data.get("supplier_id") is not None and session.get(Supplier, data["supplier_id"]) is None:
        raise ValueError("Supplier not found")
    if data.get("expense_date") is None:
        data.pop("expense_date", None)
    return crud.create_record(session, Expense, data)


suppliers_router = registry_router(
    prefix="/suppliers",
    label="Supplier",
    model=Supplier,
    create_schema=schemas.SupplierCreate,
    update_schema=schemas.SupplierUpdate,
    read_schema=schemas.SupplierRead,
    lister=crud.list_suppliers,
)

couriers_router = registry_router(
    prefix="/couriers",
    label="Courier",
    model=Courier,
    create_schema=schemas.CourierCreate,
    update_schema=schemas.CourierUpdate,
    read_schema=schemas.CourierRead,
    lister=crud.list_couriers,
)

expenses_router = registry_router(
    prefix="/expenses",
    label="Expense",
    model=Expense,
    create_schema=schemas.ExpenseCreate,
    update_schema=schemas.ExpenseUpdate,
    read_schema=schemas.ExpenseRead,
    lister=crud.list_expenses,
    creator=_create_expense,
)

categories_router = registry_router(
    prefix="/categories",
    label="Category",
    model=Category,
    create_schema=schemas.CategoryCreate,
    update_schema=schemas.CategoryUpdate,
    read_schema=schemas.CategoryRead,
    lister=crud.list_categories,
    deleter=crud.delete_category,
)

tables_router = registry_router(
    prefix="/tables",
    label="Table",
    model=DiningTable,
    create_schema=schemas.TableCreate,
    update_schema=schemas.TableUpdate,
    read_schema=schemas.TableRead,
    lister=crud.list_tables,
    creator=crud.create_table,
    deleter=crud.delete_table,
)

inventory_actions_router = APIRouter(
    prefix="/inventory", tags=["inventory"], dependencies=[Depends(verify_access_key)]
)


@inventory_actions_router.get("/low-stock", response_model=List[schemas.InventoryItemRead])
def list_low_stock(session: SessionDep):
    return crud.list_low_stock(session)


@inventory_actions_router.post("/{record_id}/adjust", response_model=schemas.InventoryItemRead)
def adjust_stock(record_id: int, payload: schemas.StockAdjustment, session: SessionDep):
    item = get_or_404(session, InventoryItem, record_id, "Inventory item")
    return crud.adjust_inventory(session, item, payload.delta)


inventory_router = registry_router(
    prefix="/inventory",
    label="Inventory item",
    model=InventoryItem,
    create_schema=schemas.InventoryItemCreate,
    update_schema=schemas.InventoryItemUpdate,
    read_schema=schemas.InventoryItemRead,
    lister=crud.list_inventory,
)

# fixed paths go before the generic /{record_id} routes
ROUTERS = [
    categories_router,
    tables_router,
    suppliers_router,
    couriers_router,
    expenses_router,
    inventory_actions_router,
    inventory_router,
]
