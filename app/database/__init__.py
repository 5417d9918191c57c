"""Couche base de données : Base déclarative, engine et sessions."""
