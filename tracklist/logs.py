import json, time, uuid, datetime as dt
import logging
from typing import Optional

from .gateway import Database

logger = logging.getLogger(__name__)

DDL = {
    "sqlite": """
CREATE TABLE IF NOT EXISTS operation_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  username TEXT NOT NULL,
  action TEXT NOT NULL,
  entity_type TEXT,
  entity_id TEXT,
  request_id TEXT,
  before_json TEXT,
  after_json TEXT,
  payload_json TEXT,
  result TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_log_ts ON operation_log(ts);
CREATE INDEX IF NOT EXISTS idx_log_user_action ON operation_log(username, action);
""",
    "postgres": """
CREATE TABLE IF NOT EXISTS operation_log (
  id SERIAL PRIMARY KEY,
  ts TEXT NOT NULL,
  username TEXT NOT NULL,
  action TEXT NOT NULL,
  entity_type TEXT,
  entity_id TEXT,
  request_id TEXT,
  before_json TEXT,
  after_json TEXT,
  payload_json TEXT,
  result TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_log_ts ON operation_log(ts);
CREATE INDEX IF NOT EXISTS idx_log_user_action ON operation_log(username, action);
""",
}


def ensure_log_schema(db: Database):
    db.execute_script(DDL[db.dialect])


class LogContext:
    def __init__(self, db: Database, action: str, user: str = "anonymous"):
        self.db = db
        self.action = action
        self.user = user
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.before = None
        self.after = None
        self.payload = None
        self.entity_type = None
        self.entity_id = None

    def set_entity(self, etype: str, eid):
        self.entity_type = etype
        self.entity_id = str(eid)

    def set_before(self, obj): self.before = obj
    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def write(self, result: str = "OK", err: Optional[str] = None):
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec = (
            dt.datetime.now(dt.timezone.utc).isoformat(),
            self.user,
            self.action,
            self.entity_type,
            self.entity_id,
            self.request_id,
            json.dumps(self.before, ensure_ascii=False) if self.before is not None else None,
            json.dumps(self.after, ensure_ascii=False) if self.after is not None else None,
            json.dumps(self.payload, ensure_ascii=False) if self.payload is not None else None,
            result,
            err,
            elapsed_ms,
        )
        try:
            self.db.execute(
                """INSERT INTO operation_log
                (ts,username,action,entity_type,entity_id,request_id,before_json,after_json,payload_json,result,err_msg,latency_ms)
                VALUES(?,?,?,?,?,?,?,?,?,?,?,?)""",
                rec,
            )
        except Exception:
            # never fails the request it records
            logger.exception("operation_log write failed: action=%s user=%s", self.action, self.user)


def search_logs(db: Database, user: str, q: str | None, action: str | None,
                ts_from: str | None, ts_to: str | None, page: int, size: int):
    where = ["username = ?"]
    params: list = [user]
    if q:
        where.append("(payload_json LIKE ? OR before_json LIKE ? OR after_json LIKE ?)")
        params += [f"%{q}%"] * 3
    if action:
        where.append("action = ?")
        params.append(action)
    if ts_from:
        where.append("ts >= ?")
        params.append(ts_from)
    if ts_to:
        where.append("ts <= ?")
        params.append(ts_to)
    wh = " WHERE " + " AND ".join(where)
    page = max(1, page)
    size = max(1, min(size, 200))
    total = db.query_one(f"SELECT COUNT(1) AS cnt FROM operation_log{wh}", params)["cnt"]
    rows = db.query_many(
        f"SELECT * FROM operation_log{wh} ORDER BY ts DESC, id DESC LIMIT ? OFFSET ?",
        params + [size, (page - 1) * size],
    )
    return int(total), rows
