"""QuestHub: capability-gated quest campaign ledger."""

__version__ = "0.1.0"
