from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase


# BIGINT côté Postgres, INTEGER côté SQLite (sinon pas d'autoincrement rowid)
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass
