# app/db/base.py
from sqlalchemy import case
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def enum_order(column, enum_cls):
    """Expresión para ordenar por el orden de declaración del enum.

    Así se comporta un enum nativo de PostgreSQL; las columnas se guardan
    como texto, por eso el ORDER BY alfabético no sirve.
    """
    return case({member: i for i, member in enumerate(enum_cls)}, value=column, else_=len(enum_cls))
