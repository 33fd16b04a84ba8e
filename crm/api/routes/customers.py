"""
Customer and order ingestion routes.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from crm.api.deps import get_customers_service
from crm.services.customers import CustomersApplicationService

router = APIRouter(tags=["customers"])


class CreateCustomerRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    totalSpends: float = Field(default=0, ge=0)
    visitCount: int = Field(default=0, ge=0)
    lastActiveDate: Optional[datetime] = None


class CreateOrderRequest(BaseModel):
    orderId: str = Field(..., min_length=1)
    customerId: str = Field(..., min_length=1)
    orderAmount: float = Field(..., ge=0)
    orderDate: datetime


@router.post("/customers", status_code=201)
async def create_customer(
    body: CreateCustomerRequest,
    service: CustomersApplicationService = Depends(get_customers_service),
):
    customer = await service.create_customer(
        name=body.name,
        email=body.email,
        total_spends=body.totalSpends,
        visit_count=body.visitCount,
        last_active_date=body.lastActiveDate,
    )
    return {"message": "Customer created successfully", "customer": customer.to_dict()}


@router.get("/customers")
async def list_customers(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CustomersApplicationService = Depends(get_customers_service),
):
    customers = await service.list_customers(limit=limit, offset=offset)
    return {"customers": [c.to_dict() for c in customers]}


@router.delete("/customers/{customer_id}")
async def delete_customer(
    customer_id: str,
    service: CustomersApplicationService = Depends(get_customers_service),
):
    await service.delete_customer(customer_id)
    return {"message": "Customer deleted"}


@router.post("/orders", status_code=201)
async def create_order(
    body: CreateOrderRequest,
    service: CustomersApplicationService = Depends(get_customers_service),
):
    """Records an order and updates the customer's spend, visits and activity."""
    order = await service.record_order(
        order_id=body.orderId,
        customer_id=body.customerId,
        order_amount=body.orderAmount,
        order_date=body.orderDate,
    )
    return {"message": "Order created successfully", "order": order.to_dict()}


@router.get("/orders")
async def list_orders(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    customerId: Optional[str] = None,
    service: CustomersApplicationService = Depends(get_customers_service),
):
    orders = await service.list_orders(limit=limit, offset=offset, customer_id=customerId)
    return {"orders": [o.to_dict() for o in orders]}
