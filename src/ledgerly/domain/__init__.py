"""Domain layer for ledgerly: ledger, balances and debt projections.

Services live in their own modules (``ledgerly.domain.ledger``,
``ledgerly.domain.debt`` and so on). They are not re-exported here because
``ledgerly.database.base`` imports ``ledgerly.domain.entities`` and the
services import the database layer.
"""
