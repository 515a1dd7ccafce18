# backend/routes/addresses.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from repositories import address_repository
from schemas.address import AddressCreate, AddressOut, AddressUpdate
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/addresses", tags=["Addresses"])

def _get_owned(db: Session, address_id: int, user: User):
    address = address_repository.find_address_by_id(db, address_id, user.id)
    if not address:
        raise HTTPException(status_code=404, detail="Endereço não encontrado")
    return address

@router.get("", response_model=List[AddressOut])
def list_addresses(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return address_repository.find_user_addresses(db, current_user.id)

@router.post("", response_model=AddressOut, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = address_repository.create_address(db, current_user.id, payload.model_dump())
    write_log(db, user_id=current_user.id, action="ADDRESS_CREATE", resource="addresses",
              ip=client_ip(request), meta={"address_id": address.id})
    db.refresh(address)
    return address

@router.put("/{address_id}", response_model=AddressOut)
def update_address(
    address_id: int,
    payload: AddressUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = _get_owned(db, address_id, current_user)
    address_repository.update_address(db, address, payload.model_dump(exclude_unset=True))
    write_log(db, user_id=current_user.id, action="ADDRESS_UPDATE", resource="addresses",
              ip=client_ip(request), meta={"address_id": address_id})
    db.refresh(address)
    return address

# Orders keep their own snapshot, so deleting never affects order history
@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_address(
    address_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = _get_owned(db, address_id, current_user)
    address_repository.delete_address(db, address)
    write_log(db, user_id=current_user.id, action="ADDRESS_DELETE", resource="addresses",
              ip=client_ip(request), meta={"address_id": address_id})
