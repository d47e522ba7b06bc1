"""Recibos y caja: front-end Flask del módulo de cobranza escolar."""

__version__ = '1.0.0'
