"""Shared fixtures: product factory, fake collaborators and an API test client."""

import json
import logging
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.api.deps import catalog_dep, model_client_dep, profile_repo_dep
from app.domain.models.product import Product, UserProfile
from app.domain.repositories.product_repo import CatalogRepo
from app.main import app

logging.basicConfig(level=logging.WARNING)


def make_product(pid: str, **overrides) -> Product:
    data = {
        "id": pid,
        "name": f"Product {pid}",
        "category": "Electronics",
        "price": 40.0,
        "rating": 4.0,
        "reviews": 10,
        "in_stock": True,
        "description": "",
        "image": f"/images/{pid}.jpg",
    }
    data.update(overrides)
    return Product(**data)


def reco(pid: str, score: float = 90, explanation: str = "fits", reasons=("r1", "r2")) -> Dict:
    return {
        "productId": pid,
        "explanation": explanation,
        "relevanceScore": score,
        "matchReasons": list(reasons),
    }


def document(*items: Dict) -> str:
    return json.dumps({"recommendations": list(items)})


class FakeModelClient:
    """Replays fixed chunks; optionally fails after `fail_after` chunks."""

    def __init__(self, chunks: List[str], fail_after: Optional[int] = None, error: Exception = None):
        self.chunks = chunks
        self.fail_after = fail_after
        self.error = error or RuntimeError("model unavailable")
        self.prompts: List[str] = []
        self.closed = False
        self.delivered = 0

    async def stream(self, prompt: str):
        self.prompts.append(prompt)
        try:
            for i, chunk in enumerate(self.chunks):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                self.delivered += 1
                yield chunk
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise self.error
        finally:
            self.closed = True


class FakeProfileRepo:
    def __init__(self, profiles: Dict[str, UserProfile]):
        self.profiles = profiles

    async def get_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def catalog() -> List[Product]:
    return [
        make_product("A", category="Electronics", price=40, rating=4.0, name="Bluetooth Speaker",
                     description="Portable bluetooth speaker with deep bass"),
        make_product("B", category="Electronics", price=45, rating=4.5, name="Wireless Earbuds",
                     description="Bluetooth earbuds with charging case"),
        make_product("C", category="Clothing", price=40, rating=5.0, in_stock=False, name="Rain Jacket",
                     description="Waterproof jacket"),
        make_product("D", category="Sports", price=120, rating=3.5, name="Yoga Mat",
                     description="Non-slip mat for home workouts"),
        make_product("E", category="Electronics", price=650, rating=4.8, name="Mirrorless Camera",
                     description="4K camera with fast autofocus"),
    ]


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        user_id="u1",
        name="Ada",
        favorite_categories=["Electronics"],
        price_range="budget",
        interests=["Technology", "Music"],
        lifestyle="active",
        search_history=["speaker", "earbuds"],
        onboarding_completed=True,
    )


@pytest.fixture
def fake_model():
    return FakeModelClient(
        ['{"recommendations":[', json.dumps(reco("A")), ",", json.dumps(reco("B", 80)), "]}"]
    )


@pytest.fixture
def api_client(catalog, profile, fake_model):
    profiles = FakeProfileRepo({
        "u1": profile,
        "u2": profile.model_copy(update={"user_id": "u2", "onboarding_completed": False}),
    })
    app.dependency_overrides[catalog_dep] = lambda: CatalogRepo(catalog)
    app.dependency_overrides[profile_repo_dep] = lambda: profiles
    app.dependency_overrides[model_client_dep] = lambda: fake_model
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
