"""Tests for prompt rendering."""

from datetime import date

import pytest
from conftest import make_product

from app.domain.models.product import Address, UserProfile
from app.domain.services.prompts import age_group, build_recommendation_prompt

TODAY = date(2026, 6, 1)


@pytest.mark.parametrize("born,expected", [
    (None, "Not specified"),
    (date(2010, 1, 1), "Under 18"),
    (date(2005, 12, 31), "18-24"),
    (date(1995, 1, 1), "25-34"),
    (date(1985, 1, 1), "35-44"),
    (date(1975, 1, 1), "45-54"),
    (date(1960, 1, 1), "55+"),
])
def test_age_group(born, expected):
    assert age_group(born, TODAY) == expected


def test_prompt_renders_profile_and_candidates():
    profile = UserProfile(
        gender="female",
        date_of_birth=date(1995, 4, 2),
        address=Address(city="Lyon", country="France"),
        favorite_categories=["Sports", "Home"],
        price_range="mid-range",
        interests=["Fitness & Health"],
        lifestyle="active",
        search_history=["yoga mat", "kettlebell"],
    )
    candidates = [
        make_product("p1", name="Yoga Mat", category="Sports", price=39.99, rating=4.6, reviews=1520,
                     description="Non-slip"),
        make_product("p2", name="Kettle", category="Home", price=60, rating=4.0, reviews=2),
    ]
    prompt = build_recommendation_prompt(profile, candidates, "Ada", today=TODAY)

    assert "- Name: Ada" in prompt
    assert "- Age Group: 25-34" in prompt
    assert "- Favorite Categories: Sports, Home" in prompt
    assert "- Location: Lyon, France" in prompt
    assert "- Recent Search History: yoga mat, kettlebell" in prompt
    assert "**Available Products (2 items):**" in prompt
    assert "1. ID: p1\n   Name: Yoga Mat" in prompt
    assert "Price: $39.99" in prompt and "Price: $60\n" in prompt
    assert "Rating: 4.6/5 (1520 reviews)" in prompt
    assert '"recommendations": [' in prompt


def test_prompt_defaults_for_empty_profile():
    prompt = build_recommendation_prompt(UserProfile(), [make_product("p1")], "Test User", today=TODAY)
    assert "- Gender: Not specified" in prompt
    assert "- Interests: None" in prompt
    assert "- Location: Not specified, Not specified" in prompt
    assert "- Recent Search History: None" in prompt


def test_search_history_bounded_to_ten():
    profile = UserProfile(search_history=[f"q{i}" for i in range(15)])
    assert profile.search_history == [f"q{i}" for i in range(10)]
