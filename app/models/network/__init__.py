from app.models.network.network import Network, NetworkCompanion

__all__ = ["Network", "NetworkCompanion"]
