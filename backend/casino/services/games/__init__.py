"""Game engines and round schedulers.

Engines here are pure with respect to money: they compute outcomes and
payouts and never touch balances. Settlement lives in
``casino.services.ledger`` and ``casino.services.settlement``.
"""
