# backend/utils/audit.py
from sqlalchemy.orm import Session
from models.log import Log

# commit=False lets services record the entry inside their own transaction
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None, commit=True):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    if commit:
        db.commit()
    else:
        db.flush()
    return entry

def client_ip(request):
    return request.client.host if request is not None and request.client else None
