"""
Built-in demonstration catalog.

Used when the configured catalog cannot be loaded: five hand-written
reference wines followed by generated wines drawn from fixed pools.
"""

from typing import List, Optional

import numpy as np

from vinofind.schema import WineRecord

REFERENCE_WINES = [
    {
        "id": 1,
        "title": "Cabernet Sauvignon Reserve 2018",
        "variety": "Cabernet Sauvignon",
        "country": "France",
        "region": "Bordeaux",
        "winery": "Château Margaux",
        "price": 125.99,
        "rating": 96,
        "description": "A rich, full-bodied red wine with notes of black currant, dark cherry, "
                       "and hints of oak. Excellent aging potential.",
        "flavor_profile": "Bold and structured",
        "body": "Full",
        "tannins": "High",
        "acidity": "Medium",
        "aroma": "Black fruits, tobacco, vanilla",
    },
    {
        "id": 2,
        "title": "Chardonnay Barrel Select 2020",
        "variety": "Chardonnay",
        "country": "USA",
        "region": "California",
        "winery": "Napa Valley Winery",
        "price": 45.50,
        "rating": 92,
        "description": "Creamy white wine with citrus notes and a smooth vanilla finish from oak aging.",
        "flavor_profile": "Buttery and rich",
        "body": "Medium",
        "acidity": "Medium-High",
        "aroma": "Citrus, pear, vanilla",
    },
    {
        "id": 3,
        "title": "Pinot Noir Elegance 2019",
        "variety": "Pinot Noir",
        "country": "Italy",
        "region": "Tuscany",
        "winery": "Antinori",
        "price": 68.00,
        "rating": 93,
        "description": "Elegant and silky red wine with red berry flavors and subtle spice notes.",
        "flavor_profile": "Delicate and aromatic",
        "body": "Light",
        "tannins": "Low",
        "aroma": "Red berries, rose, spice",
    },
    {
        "id": 4,
        "title": "Sauvignon Blanc Fresh 2021",
        "variety": "Sauvignon Blanc",
        "country": "New Zealand",
        "region": "Marlborough",
        "winery": "Cloudy Bay",
        "price": 32.99,
        "rating": 90,
        "description": "Crisp and refreshing white wine with vibrant grapefruit and herbaceous notes.",
        "flavor_profile": "Zesty and crisp",
        "body": "Light",
        "acidity": "High",
        "aroma": "Grapefruit, lime, cut grass",
    },
    {
        "id": 5,
        "title": "Merlot Classic 2017",
        "variety": "Merlot",
        "country": "Chile",
        "region": "Maipo Valley",
        "winery": "Concha y Toro",
        "price": 28.50,
        "rating": 89,
        "description": "Smooth and approachable red wine with plum and chocolate notes.",
        "flavor_profile": "Soft and fruity",
        "body": "Medium",
        "tannins": "Medium",
        "aroma": "Plum, black cherry, chocolate",
    },
]

VARIETY_POOL = [
    "Cabernet Sauvignon", "Merlot", "Pinot Noir", "Syrah", "Chardonnay",
    "Sauvignon Blanc", "Riesling", "Malbec", "Tempranillo", "Sangiovese",
    "Zinfandel", "Pinot Grigio", "Grenache", "Cabernet Franc", "Carmenere",
]
COUNTRY_POOL = [
    "France", "Italy", "Spain", "USA", "Chile", "Argentina", "Australia",
    "Germany", "Portugal", "South Africa", "New Zealand", "Austria", "Hungary", "Greece",
]
REGION_POOL = [
    "Bordeaux", "Tuscany", "Rioja", "Napa Valley", "Maipo Valley", "Mendoza",
    "Barossa Valley", "Mosel", "Douro", "Stellenbosch", "Marlborough", "Wachau",
    "Tokaj", "Peloponnese",
]
FLAVOR_POOL = ["Fruity", "Elegant", "Bold", "Smooth"]
LEVEL_POOL = ["Low", "Medium", "High"]
BODY_POOL = ["Light", "Medium", "Full"]


def sample_catalog(n_generated: int = 25, seed: Optional[int] = 42) -> List[WineRecord]:
    """
    Build the demonstration catalog.

    Args:
        n_generated: Number of generated wines after the reference five
        seed: RNG seed; the default keeps the catalog stable across runs

    Returns:
        WineRecords with ids 1..5 + n_generated
    """
    rng = np.random.default_rng(seed)
    wines = [WineRecord.model_validate(w) for w in REFERENCE_WINES]

    for wine_id in range(len(REFERENCE_WINES) + 1, len(REFERENCE_WINES) + n_generated + 1):
        variety = str(rng.choice(VARIETY_POOL))
        country = str(rng.choice(COUNTRY_POOL))
        year = 2020 - int(rng.integers(0, 10))

        wines.append(WineRecord(
            id=wine_id,
            title=f"{variety} {country} {year}",
            variety=variety,
            country=country,
            region=str(rng.choice(REGION_POOL)),
            winery=f"{country} Winery",
            price=float(rng.integers(20, 120)),
            rating=float(rng.integers(85, 100)),
            description=f"A fine example of {variety} from {country}. Excellent with food or on its own.",
            flavor_profile=str(rng.choice(FLAVOR_POOL)),
            body=str(rng.choice(BODY_POOL)),
            tannins=str(rng.choice(LEVEL_POOL)),
            aroma="Fruit and spice notes",
        ))

    return wines
