# sqlboil

A small library for building SQL statements out of composable query mods,
binding result rows onto dataclasses, and eager loading relationships
between model objects. It has no dependencies beyond the standard library.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Building queries

A `sqlboil.query.Query` collects the pieces of a statement. Its `Dialect`
sets the identifier quote characters (`lq`, `rq`), whether placeholders are
numbered (`$1`, `$2`, ...) or plain `?`, and whether `TOP`/`OFFSET ... FETCH`
is used instead of `LIMIT`/`OFFSET`.

Query mods from `sqlboil.qm` each change a query in one way, and
`sqlboil.builder.build_query` turns the query into SQL text and its argument
list. The built text is cached on the query as its raw SQL.

```python
from sqlboil.query import Query, Dialect
from sqlboil import qm
from sqlboil.builder import build_query

q = Query(dialect=Dialect(lq='"', rq='"', use_index_placeholders=True))
qm.apply(
    q,
    qm.select("id", "name"),
    qm.from_("users"),
    qm.where("age > ?", 21),
    qm.or_in("id in ?", 1, 2, 3),
    qm.order_by("name"),
    qm.limit(10),
)
sql, args = build_query(q)
# SELECT "id", "name" FROM "users" WHERE (age > $1) OR ("id" IN ($2,$3,$4)) ORDER BY name LIMIT 10;
# args == [21, 1, 2, 3]
```

The mods available are `sql`, `load`, `inner_join`, `left_outer_join`,
`right_outer_join`, `full_outer_join`, `distinct`, `with_`, `select`,
`where`, `and_`, `or_`, `or2`, `where_in`, `and_in`, `or_in`,
`where_not_in`, `and_not_in`, `or_not_in`, `expr`, `group_by`, `order_by`,
`having`, `from_`, `limit`, `offset`, `for_`, `comment` and `with_deleted`.
`qm.rels` joins relationship names into a dotted path, and `qm.QueryMods` is a
list of mods that can itself be applied.

An IN clause with no arguments becomes `(1=0)` (and NOT IN becomes `(1=1)`),
so it can still be combined with other conditions. A `?` escaped as `\?` is
written as a literal `?`.

Where clauses are wrapped in parentheses automatically. Grouping them by
hand uses `qm.expr`; once it is used anywhere in the query, no parentheses are
added automatically:

```python
qm.apply(q, qm.where("a = ?", 1), qm.or2(qm.expr(qm.where("b = ? and c = ?", 2, 3))))
# ... WHERE a = $1 OR (b = $2 and c = $3)
```

`with_deleted` drops the last `deleted_at is null` where clause when the
query is built.

`sqlboil.qmhelper` offers `where` (with an `Operator` such as `Operator.GTE`)
and null-aware helpers `where_null_eq`, `where_is_null` and
`where_is_not_null`. A value counts as NULL if it is None or a `Nullable`
whose `is_zero()` returns true.

Deletes and updates come from the same query: set `query.delete = True`, or
give `query.update` a mapping of column names to values (columns are written
in sorted order). A raw statement is made with `sqlboil.query.raw`.

## Running queries

`exec_query`, `query_rows` and `query_row` in `sqlboil.builder` build the
statement and call `executor.execute(sql, args)` on any DB-API style
connection or cursor. `query_row` returns the result's `fetchone()`. The
built SQL and arguments are logged at debug level on the `sqlboil.builder`
logger.

## Binding rows

`sqlboil.binding.bind(rows, obj, model=None)` reads column names from a
cursor's `description` and sets row values onto a dataclass instance (first
row only; `NoRowsError` if there is none) or appends one new `model`
instance per row to a list.

Columns are matched to fields through `boil` field metadata:

```python
from dataclasses import dataclass, field

@dataclass
class User:
    id: int = 0
    name: str = field(default="", metadata={"boil": "user_name"})
    secret_notes: str = field(default="", metadata={"boil": "-"})
```

Without a name the column is the field name passed through `un_title_case`
(`FunID` becomes `fun_id`); `-` excludes a field; `"name,bind"` on a field
holding a dataclass recurses into it with `name.` as column prefix. A column
that matches no name exactly binds to the first name ending in `.column`, and
unmatched columns are ignored. `make_struct_mapping`, `bind_mapping`,
`set_from_mapping` and `values_from_mapping` expose the mapping steps.

`sqlboil.defaults.non_zero_default_set` returns which of the given column
names have a non-zero value on a dataclass instance.

## Eager loading

`sqlboil.eager.bind_query(query, executor, obj, model=None)` runs a query,
binds its rows and then loads the relationships requested with `qm.load`,
for example `qm.load(qm.rels("Videos", "Tags"))`.

A model keeps loaded relationships in an attribute `R` and a loader in an
attribute `L`. For a relationship `name` the loader must have a method
`load_name(executor, singular, obj, mods)`, which receives one model or a
list of models and sets `R.name` on each. Paths are loaded level by level,
one call per level, and each path prefix only once. `eager_load` and
`collect_loaded` can be used directly.

## Comparing and assigning values

`sqlboil.values` provides `equal`, `assign`, `must_time`, `is_valuer_nil`,
`is_nil` and `set_scanner`. They understand `Valuer` objects (a `value()`
method returning a primitive or None) and `Scanner` objects (a `scan(value)`
method), as used for nullable column types. `equal` parses a string compared
with a number as a number, and raises `TypeError` when primitive types differ.

## What it does not do

The package does not generate model classes or loader methods, does not
open or manage database connections, and has no command-line tool; callers
supply their own dataclasses, loaders and DB-API executor.