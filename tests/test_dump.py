# tests/test_dump.py
"""
Tests for loading front-end JSON dumps.
"""

import json

import pytest

from errcheckif.analyzer import FindingKind, analyze_unit
from errcheckif.ast_nodes import (
    AssignStmt,
    BinaryExpr,
    CallExpr,
    CaseClause,
    FuncLit,
    Ident,
    IfStmt,
    OtherExpr,
    OtherStmt,
    SelectorExpr,
)
from errcheckif.dump import load_dump, loads_dump, parse_dump
from errcheckif.errors import DumpFormatError
from errcheckif.resolver import AnnotatedResolver


def ident(name, id_=None, pos=None):
    node = {"kind": "ident", "name": name, "id": id_}
    if pos:
        node["pos"] = pos
    return node


def call(name, results, *args, pos=None):
    node = {"kind": "call", "func": ident(name), "args": list(args), "results": results}
    if pos:
        node["pos"] = pos
    return node


NIL = {"kind": "nil"}

# func f() {
#     _, err := mightFail()
#     fmt.Println(err)
#     if err2 := fail(); err2 != nil {}
# }
DUMP = {
    "file": "pkg/x.go",
    "test": False,
    "types": {"*MyErr": {"methods": {"Error": "func() string"}}},
    "suppressions": [{"errorId": "errIgnored", "line": 9}],
    "funcs": [{
        "name": "f",
        "pos": [1, 1],
        "results": [],
        "body": [
            {"kind": "assign", "pos": [2, 2], "define": True,
             "lhs": [ident("_"), ident("err", 1, pos=[2, 5])],
             "rhs": [call("mightFail", ["string", "error"])]},
            {"kind": "expr", "pos": [3, 2],
             "expr": {"kind": "call",
                      "func": {"kind": "selector", "x": ident("fmt"), "sel": "Println"},
                      "args": [ident("err", 1)], "results": None}},
            {"kind": "if", "pos": [4, 2],
             "init": {"kind": "assign", "define": True,
                      "lhs": [ident("err2", 2)], "rhs": [call("fail", ["error"])]},
             "cond": {"kind": "binary", "op": "!=", "x": ident("err2", 2), "y": NIL},
             "body": {"kind": "block", "stmts": []}},
        ],
    }],
}


class TestLoadDump:

    def test_unit_fields(self):
        unit = load_dump(DUMP)
        assert unit.file == "pkg/x.go"
        assert not unit.is_test
        assert unit.types == {"*MyErr": {"Error": "func() string"}}
        assert [(s.error_id, s.line) for s in unit.suppressions] == [("errIgnored", 9)]

    def test_statements(self):
        func = load_dump(DUMP).funcs[0]
        assign, expr, cond = func.body.stmts
        assert isinstance(assign, AssignStmt) and assign.define
        assert assign.lhs[1].obj == 1
        assert assign.rhs[0].results == ("string", "error")
        assert isinstance(expr.expr.func, SelectorExpr)
        assert expr.expr.results is None
        assert isinstance(cond, IfStmt) and isinstance(cond.init, AssignStmt)
        assert isinstance(cond.cond, BinaryExpr)

    def test_positions(self):
        func = load_dump(DUMP).funcs[0]
        assign, _, cond = func.body.stmts
        assert (func.loc.line, func.loc.col) == (1, 1)
        assert (assign.lhs[1].loc.line, assign.lhs[1].loc.col) == (2, 5)
        # inherited from the enclosing statement
        assert assign.lhs[0].loc == assign.loc
        assert cond.init.loc == cond.loc
        assert assign.loc.file == "pkg/x.go"

    def test_analysis(self):
        unit = load_dump(DUMP)
        findings = analyze_unit(unit, AnnotatedResolver.for_unit(unit))
        assert [(f.kind, f.name, f.loc.line, f.loc.col) for f in findings] == [
            (FindingKind.UNCHECKED, "err", 2, 5),
        ]

    def test_named_results(self):
        data = {"file": "a.go", "funcs": [{
            "name": "g",
            "results": [{"name": "err", "id": 7, "type": "error"}],
            "body": [],
        }]}
        slot = load_dump(data).funcs[0].results[0]
        assert (slot.name, slot.obj, slot.type) == ("err", 7, "error")

    def test_optional_fields_default(self):
        unit = load_dump({"file": "a.go"})
        assert unit.funcs == [] and unit.types == {} and unit.suppressions == []

    def test_test_flag(self):
        assert load_dump({"file": "a.go", "test": True}).is_test


class TestNodeKinds:

    def _stmt(self, node):
        data = {"file": "a.go", "funcs": [{"name": "f", "body": [node]}]}
        return load_dump(data).funcs[0].body.stmts[0]

    def test_else_if(self):
        stmt = self._stmt({
            "kind": "if", "cond": ident("a"), "body": [],
            "else": {"kind": "if", "cond": ident("b"), "body": [],
                     "else": {"kind": "block", "stmts": []}},
        })
        assert isinstance(stmt.else_, IfStmt)

    def test_switch_as_other(self):
        stmt = self._stmt({
            "kind": "other", "name": "switch",
            "children": [ident("t"), {"kind": "case", "exprs": [], "stmts": []}],
        })
        assert isinstance(stmt, OtherStmt) and stmt.kind == "switch"
        assert isinstance(stmt.children[0], Ident)
        assert isinstance(stmt.children[1], CaseClause)

    def test_funclit_and_opaque_expressions(self):
        stmt = self._stmt({
            "kind": "expr",
            "expr": {"kind": "call", "args": [],
                     "func": {"kind": "funclit", "results": [],
                              "body": {"kind": "block", "stmts": []}}},
        })
        assert isinstance(stmt.expr, CallExpr)
        assert isinstance(stmt.expr.func, FuncLit)

    def test_unmodelled_binary_operator(self):
        stmt = self._stmt({"kind": "expr", "expr": {
            "kind": "binary", "op": "<", "x": ident("a"), "y": ident("b")}})
        assert isinstance(stmt.expr, OtherExpr) and stmt.expr.kind == "binary:<"


class TestMalformed:

    @pytest.mark.parametrize("data", [
        [],
        {},
        {"file": ""},
        {"file": "a.go", "funcs": {}},
        {"file": "a.go", "funcs": [{"body": []}]},
        {"file": "a.go", "funcs": [{"name": "f", "body": [{"kind": "loop"}]}]},
        {"file": "a.go", "funcs": [{"name": "f", "body": [{"kind": "assign", "lhs": []}]}]},
        {"file": "a.go", "funcs": [{"name": "f", "body": [
            {"kind": "expr", "expr": {"kind": "ident", "name": "x", "id": [1]}}]}]},
        {"file": "a.go", "funcs": [{"name": "f", "pos": "1:1", "body": []}]},
        {"file": "a.go", "funcs": [{"name": "f", "body": [
            {"kind": "expr", "expr": {"kind": "call", "func": ident("g"),
                                      "results": "error"}}]}]},
        {"file": "a.go", "suppressions": [{"errorId": "x", "line": "3"}]},
    ])
    def test_rejected(self, data):
        with pytest.raises(DumpFormatError):
            load_dump(data)

    def test_invalid_json(self):
        with pytest.raises(DumpFormatError):
            loads_dump("{not json")

    def test_missing_file(self, tmp_path):
        with pytest.raises(DumpFormatError):
            parse_dump(tmp_path / "absent.json")

    def test_parse_dump_roundtrip_from_disk(self, tmp_path):
        path = tmp_path / "x.go.json"
        path.write_text(json.dumps(DUMP), encoding="utf-8")
        assert parse_dump(path).funcs[0].name == "f"
