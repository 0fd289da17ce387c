import logging

from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger("audit")

# Stage an audit entry in the caller's transaction; it is written by the same
# commit as the change it describes, or not at all.
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    logger.debug("staged %s %s %s user=%s meta=%s", resource, action, status, user_id, meta or {})
    return entry
