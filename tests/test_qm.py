import pytest

from sqlboil import qm
from sqlboil.builder import build_query, where_clause, write_comment
from sqlboil.query import Dialect, JoinKind, Query, WhereKind


def _query():
    return Query(dialect=Dialect(use_index_placeholders=True))


def test_sql_sets_raw():
    q = _query()
    qm.apply(q, qm.sql("select * from thing", 5, 3))
    assert q.raw_sql == "select * from thing"
    assert q.raw_args == [5, 3]


def test_where_and():
    q = _query()
    qm.apply(q, qm.where("a=?", 1), qm.and_("b=?", 2))
    result, args = where_clause(q, 1)
    assert result == " WHERE (a=$1) AND (b=$2)"
    assert args == [1, 2]


def test_or():
    q = _query()
    qm.apply(q, qm.where("(a=?)"), qm.or_("(b=?)"))
    result, _ = where_clause(q, 1)
    assert result == " WHERE ((a=$1)) OR ((b=$2))"


def test_or2_expr():
    q = _query()
    qm.apply(q, qm.where("a=?", 1), qm.or2(qm.expr(qm.where("b=? and c=?", 2, 3))))
    result, args = where_clause(q, 1)
    assert result == " WHERE a=$1 OR (b=$2 and c=$3)"
    assert args == [1, 2, 3]


def test_expr_adds_parens():
    q = _query()
    qm.apply(q, qm.expr(qm.where("a=?", 1)))
    kinds = [w.kind for w in q.where]
    assert kinds == [WhereKind.LEFT_PAREN, WhereKind.NORMAL, WhereKind.RIGHT_PAREN]


def test_where_in():
    q = _query()
    qm.apply(q, qm.where_in("a in ?", 1, 2, 3))
    result, args = where_clause(q, 1)
    assert result == ' WHERE ("a" IN ($1,$2,$3))'
    assert args == [1, 2, 3]


def test_and_in_and_or_in():
    q = _query()
    qm.apply(q, qm.and_in("a in ?", 1), qm.or_in("b in ?", 2))
    assert [w.kind for w in q.where] == [WhereKind.IN, WhereKind.IN]
    assert [w.or_separator for w in q.where] == [False, True]


def test_where_not_in():
    q = _query()
    qm.apply(q, qm.where_not_in("a not in ?", 1))
    result, args = where_clause(q, 1)
    assert result == ' WHERE ("a" NOT IN ($1))'
    assert args == [1]


def test_and_not_in_and_or_not_in():
    q = _query()
    qm.apply(q, qm.and_not_in("a not in ?", 1), qm.or_not_in("b not in ?", 2))
    assert [w.kind for w in q.where] == [WhereKind.NOT_IN, WhereKind.NOT_IN]
    assert [w.or_separator for w in q.where] == [False, True]


def test_empty_in_is_false():
    q = _query()
    qm.apply(q, qm.where_in("a in ?"))
    assert where_clause(q, 1)[0] == " WHERE (1=0)"


def test_joins():
    q = _query()
    qm.apply(
        q,
        qm.inner_join("a on x", 1),
        qm.left_outer_join("b on y"),
        qm.right_outer_join("c on z"),
        qm.full_outer_join("d on w", 2),
    )
    assert [j.kind for j in q.joins] == [
        JoinKind.INNER,
        JoinKind.OUTER_LEFT,
        JoinKind.OUTER_RIGHT,
        JoinKind.OUTER_FULL,
    ]
    assert q.joins[0].args == [1]
    assert q.joins[3].clause == "d on w"


def test_select_from_group_order_having():
    q = _query()
    qm.apply(
        q,
        qm.select("col1", "col2"),
        qm.from_("videos a"),
        qm.group_by("id"),
        qm.order_by("a ASC"),
        qm.having("id <> ?", 1),
    )
    assert q.select_cols == ["col1", "col2"]
    assert q.from_ == ["videos a"]
    assert q.group_by == ["id"]
    assert [o.clause for o in q.order_by] == ["a ASC"]
    assert q.having[0].clause == "id <> ?"
    assert q.having[0].args == [1]


def test_distinct_and_for():
    q = _query()
    qm.apply(q, qm.distinct("id"), qm.for_("UPDATE"))
    assert q.distinct == "id"
    assert q.for_lock == "UPDATE"


def test_with():
    q = _query()
    qm.apply(q, qm.with_("cte_1 AS (SELECT * FROM other_t1 WHERE thing=?)", 3))
    assert q.withs[0].clause == "cte_1 AS (SELECT * FROM other_t1 WHERE thing=?)"
    assert q.withs[0].args == [3]


def test_limit_offset_in_sql():
    q = _query()
    qm.apply(q, qm.from_("q"), qm.limit(5), qm.offset(6))
    sql, _ = build_query(q)
    assert "LIMIT 5" in sql
    assert q.limit == 5
    assert q.offset == 6


def test_comment():
    q = _query()
    qm.apply(q, qm.comment("first\nsecond"))
    assert write_comment(q) == "-- first\n-- second\n"


def test_load_without_mods():
    q = _query()
    qm.apply(q, qm.load("Videos"))
    assert q.load == ["Videos"]
    assert q.load_mods == {}


def test_load_with_mods():
    q = _query()
    qm.apply(q, qm.load("Videos.Tags", qm.where("deleted = ?", False)))
    assert q.load == ["Videos.Tags"]
    mods = q.load_mods["Videos.Tags"]
    inner = _query()
    mods.apply(inner)
    assert inner.where[0].clause == "deleted = ?"
    assert inner.where[0].args == [False]


def test_query_mods_apply_in_order():
    q = _query()
    qm.QueryMods([qm.where("a=?", 1), qm.or_("b=?", 2)]).apply(q)
    assert [w.clause for w in q.where] == ["a=?", "b=?"]
    assert q.where[1].or_separator is True


def test_rels():
    assert qm.rels("Videos", "Tags") == "Videos.Tags"
    assert qm.rels("Videos") == "Videos"


def test_with_deleted_removes_soft_delete():
    q = _query()
    qm.apply(
        q,
        qm.from_("t"),
        qm.where("deleted_at is null"),
        qm.where("deleted_at = survives"),
        qm.with_deleted(),
    )
    assert q.remove_soft_delete is True
    build_query(q)
    assert [w.clause for w in q.where] == ["deleted_at = survives"]


def test_or_on_unmatched_paren_raises():
    q = _query()
    q.append_where_right_paren()
    with pytest.raises(ValueError):
        qm.apply(q, qm.or2(qm.where("a=?")))
        q.append_where_right_paren()
        q.set_last_where_as_or()