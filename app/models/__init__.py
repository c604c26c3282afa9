# Ontology Models
from app.models.ontology import (
    User, Property, PropertyUnavailableDate, RatePlan, RatePlanRestriction,
    CancellationPolicy, CancellationPolicyTier, RatePlanPrice, Reservation
)

__all__ = [
    'User', 'Property', 'PropertyUnavailableDate', 'RatePlan', 'RatePlanRestriction',
    'CancellationPolicy', 'CancellationPolicyTier', 'RatePlanPrice', 'Reservation'
]
