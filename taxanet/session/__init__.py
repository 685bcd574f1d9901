"""Analysis session tying samples, filter state and network together."""

from taxanet.session.session import AnalysisSession, NetworkSnapshot

__all__ = ["AnalysisSession", "NetworkSnapshot"]
