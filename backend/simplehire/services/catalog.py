"""Static product catalog. Prices are in cents."""

from typing import Dict, List, Optional

from simplehire.models.user import ProductId

PRODUCTS: List[Dict] = [
    {
        "id": ProductId.SKILL.value,
        "name": "Skill verification",
        "description": "AI-powered interview validates your professional skills",
        "price": 4900,
        "currency": "usd",
        "features": [
            "15-min AI interview",
            "MCQ test (20 questions)",
            "Coding challenge",
            "Instant certificate",
        ],
    },
    {
        "id": ProductId.ID_VISA.value,
        "name": "ID + Visa verification",
        "description": "Verify your identity and work authorization",
        "price": 1500,
        "currency": "usd",
        "features": [
            "ID document verification",
            "Visa/EAD check",
            "Selfie verification",
            "24-48hr review",
        ],
    },
    {
        "id": ProductId.REFERENCE.value,
        "name": "Reference check",
        "description": "Professional references verified by email",
        "price": 1000,
        "currency": "usd",
        "features": [
            "Up to 5 references",
            "Automated email outreach",
            "Response tracking",
            "Verification summary",
        ],
    },
    {
        "id": ProductId.COMBO.value,
        "name": "Complete combo",
        "description": "All three verifications at a discount",
        "price": 6000,
        "currency": "usd",
        "features": [
            "All skill verification features",
            "All ID verification features",
            "All reference check features",
            "Save $14",
        ],
    },
]

_BY_ID = {product["id"]: product for product in PRODUCTS}

COMBO_PRODUCTS = [ProductId.SKILL.value, ProductId.ID_VISA.value, ProductId.REFERENCE.value]


def get_product(product_id: str) -> Optional[Dict]:
    return _BY_ID.get(product_id)


def products_granted_by(product_id: str) -> List[str]:
    """Entitlements granted by purchasing ``product_id``."""
    if product_id == ProductId.COMBO.value:
        return list(COMBO_PRODUCTS)
    return [product_id]


def grant_products(owned: List[str], product_id: str) -> List[str]:
    """Return ``owned`` extended with what ``product_id`` grants, without duplicates."""
    result = list(owned or [])
    for granted in products_granted_by(product_id):
        if granted not in result:
            result.append(granted)
    return result
