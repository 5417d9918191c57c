from app.models.church.church import Church

__all__ = ["Church"]
