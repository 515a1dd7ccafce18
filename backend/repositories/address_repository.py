# backend/repositories/address_repository.py
from sqlalchemy.orm import Session

from models.address import Address

def find_user_addresses(db: Session, user_id: int):
    return (
        db.query(Address)
        .filter(Address.user_id == user_id)
        .order_by(Address.is_default.desc(), Address.id)
        .all()
    )

# Ownership is part of the lookup: another user's address is reported as missing
def find_address_by_id(db: Session, address_id: int, user_id: int):
    return db.query(Address).filter(Address.id == address_id, Address.user_id == user_id).first()

def _clear_default(db: Session, user_id: int, keep_id: int = None):
    q = db.query(Address).filter(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id is not None:
        q = q.filter(Address.id != keep_id)
    q.update({Address.is_default: False}, synchronize_session="fetch")

def create_address(db: Session, user_id: int, data: dict) -> Address:
    has_any = db.query(Address.id).filter(Address.user_id == user_id).first() is not None
    address = Address(user_id=user_id, **data)
    if not has_any:
        address.is_default = True
    if address.is_default:
        _clear_default(db, user_id)
    db.add(address)
    db.flush()
    return address

def update_address(db: Session, address: Address, data: dict) -> Address:
    for key, value in data.items():
        setattr(address, key, value)
    if data.get("is_default"):
        _clear_default(db, address.user_id, keep_id=address.id)
    db.flush()
    return address

def delete_address(db: Session, address: Address):
    was_default = address.is_default
    user_id = address.user_id
    db.delete(address)
    db.flush()
    if was_default:
        replacement = db.query(Address).filter(Address.user_id == user_id).order_by(Address.id).first()
        if replacement:
            replacement.is_default = True
            db.flush()
