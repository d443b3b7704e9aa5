from sqlalchemy import Float
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement


class hours_between(FunctionElement):
    """``hours_between(start, end)``: elapsed hours from start to end as a float."""

    type = Float()
    name = "hours_between"
    inherit_cache = True


@compiles(hours_between)
def _hours_between_default(element, compiler, **kw):
    start, end = list(element.clauses)
    return "EXTRACT(EPOCH FROM (%s - %s)) / 3600.0" % (
        compiler.process(end, **kw),
        compiler.process(start, **kw),
    )


@compiles(hours_between, "sqlite")
def _hours_between_sqlite(element, compiler, **kw):
    start, end = list(element.clauses)
    return "(julianday(%s) - julianday(%s)) * 24.0" % (
        compiler.process(end, **kw),
        compiler.process(start, **kw),
    )
