from sqlalchemy import BigInteger, Integer

# Use BigInteger by default, with a SQLite-safe Integer variant for autoincrement PKs.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

# Heights, prices and balances are unsigned 64-bit on chain.
AMOUNT_TYPE = BigInteger
