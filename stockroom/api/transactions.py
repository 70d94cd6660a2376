import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockroom.database import get_db
from stockroom.schemas.transaction import TransactionCreate, TransactionResult
from stockroom.services import stock_service

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionResult)
def create_transaction(data: TransactionCreate, db: Session = Depends(get_db)):
    tx_id = data.id or str(uuid.uuid4())
    result = stock_service.record_transaction(
        db,
        transaction_id=tx_id,
        product_id=data.productId,
        quantity=data.quantity,
        tx_type=data.type,
        customer_id=data.customerId,
    )
    return {"txId": tx_id, **result}
