from sqlalchemy import BigInteger, Column, Integer
from sqlalchemy.dialects import mysql

from price_trend.storage.engine import Base


class PriceHistory(Base):
    """
    The single tracked series.

    when: seconds since epoch, primary key (unsigned 64-bit on MySQL)
    price_cents: price in minor units (unsigned 32-bit on MySQL)

    Rows are only ever inserted; nothing here updates or deletes them.
    """
    __tablename__ = "price_history"

    when = Column(
        BigInteger().with_variant(mysql.BIGINT(unsigned=True), "mysql"),
        primary_key=True,
        autoincrement=False,
    )
    price_cents = Column(
        Integer().with_variant(mysql.INTEGER(unsigned=True), "mysql"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PriceHistory when={self.when} price_cents={self.price_cents}>"
