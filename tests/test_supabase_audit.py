# tests/test_supabase_audit.py
"""
Supabase audit trail with a fake client (no network).
"""

from core.concepts import Success
from core.config import Settings
from core.records import InvocationRecord
from supabase_client.helpers import AuditSink, build_audit_sink, fetch_recent, insert_record


class FakeResponse:
    def __init__(self, data, status_code=201):
        self.data = data
        self.status_code = status_code


class FakeQuery:
    def __init__(self, table):
        self.table = table
        self.calls = []

    def insert(self, payload):
        self.table.rows.append(payload)
        self.calls.append(("insert", payload))
        return self

    def select(self, columns):
        self.calls.append(("select", columns))
        return self

    def order(self, column, desc=False):
        self.calls.append(("order", column, desc))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def execute(self):
        if self.table.fail:
            raise ConnectionError("supabase down")
        if self.calls and self.calls[0][0] == "insert":
            return FakeResponse([self.calls[0][1]])
        return FakeResponse(list(reversed(self.table.rows)), status_code=200)


class FakeTable:
    def __init__(self):
        self.rows = []
        self.fail = False


class FakeSupabase:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        return FakeQuery(self.tables.setdefault(name, FakeTable()))


def _record():
    return InvocationRecord.create(
        "Review", "create", {"storeId": "s1", "rating": 5}, Success({"reviewId": "r1"}), seq=7, flow="abc"
    )


def test_insert_adds_timestamp():
    sb = FakeSupabase()
    rows = insert_record("sync_invocations", {"seq": 1}, client=sb)
    assert rows[0]["seq"] == 1
    assert "created_at" in sb.tables["sync_invocations"].rows[0]


def test_insert_and_fetch_failures_are_swallowed():
    sb = FakeSupabase()
    sb.table("sync_invocations").table.fail = True
    assert insert_record("sync_invocations", {"seq": 1}, client=sb) == []
    assert fetch_recent("sync_invocations", client=sb) == []


def test_audit_sink_writes_record_dicts():
    sb = FakeSupabase()
    sink = AuditSink(sb, "sync_invocations")
    sink(_record())
    row = sb.tables["sync_invocations"].rows[0]
    assert row["seq"] == 7
    assert row["flow"] == "abc"
    assert row["outcome"] == "success"
    assert row["input"] == {"storeId": "s1", "rating": 5}
    assert row["output"] == {"reviewId": "r1"}
    assert fetch_recent("sync_invocations", limit=5, client=sb)[0]["seq"] == 7


def test_audit_sink_uses_injected_insert():
    calls = []
    sink = AuditSink("client", "audit", insert=lambda table, data, client=None: calls.append((table, data, client)))
    sink(_record())
    assert calls[0][0] == "audit"
    assert calls[0][2] == "client"


def test_no_sink_without_credentials():
    assert build_audit_sink(Settings()) is None
