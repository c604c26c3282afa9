# API Routers
from app.routers import rate_plans, prices, reservations

__all__ = ['rate_plans', 'prices', 'reservations']
