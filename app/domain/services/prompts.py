from datetime import date
from typing import Optional, Sequence

from app.domain.models.product import Product, UserProfile

NOT_SPECIFIED = "Not specified"

# Exact shape the stream extractor expects back
OUTPUT_FORMAT = """{
  "recommendations": [
    {
      "productId": "string",
      "explanation": "string",
      "relevanceScore": number,
      "matchReasons": ["string", "string", "string"]
    }
  ]
}"""


def age_group(date_of_birth: Optional[date], today: Optional[date] = None) -> str:
    """Bucket a birth date by calendar-year age."""
    if not date_of_birth:
        return NOT_SPECIFIED
    today = today or date.today()
    age = today.year - date_of_birth.year
    if age < 18:
        return "Under 18"
    if age < 25:
        return "18-24"
    if age < 35:
        return "25-34"
    if age < 45:
        return "35-44"
    if age < 55:
        return "45-54"
    return "55+"


def _join(values, empty: str = "None") -> str:
    return ", ".join(values) if values else empty


def _format_number(value: float) -> str:
    """39.99 -> "39.99", 60.0 -> "60"."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _profile_block(profile: UserProfile, user_name: str, today: Optional[date]) -> str:
    city = profile.address.city if profile.address and profile.address.city else NOT_SPECIFIED
    country = profile.address.country if profile.address and profile.address.country else NOT_SPECIFIED
    return (
        "**User Profile:**\n"
        f"- Name: {user_name}\n"
        f"- Gender: {profile.gender or NOT_SPECIFIED}\n"
        f"- Age Group: {age_group(profile.date_of_birth, today)}\n"
        f"- Favorite Categories: {_join(profile.favorite_categories)}\n"
        f"- Price Range Preference: {profile.price_range or NOT_SPECIFIED}\n"
        f"- Shopping Frequency: {profile.shopping_frequency or NOT_SPECIFIED}\n"
        f"- Interests: {_join(profile.interests)}\n"
        f"- Lifestyle: {profile.lifestyle or NOT_SPECIFIED}\n"
        f"- Location: {city}, {country}\n"
        f"- Recent Search History: {_join(profile.search_history)}"
    )


def _product_block(idx: int, p: Product) -> str:
    return (
        f"{idx}. ID: {p.id}\n"
        f"   Name: {p.name}\n"
        f"   Category: {p.category}\n"
        f"   Price: ${_format_number(p.price)}\n"
        f"   Rating: {_format_number(p.rating)}/5 ({p.reviews} reviews)\n"
        f"   Description: {p.description}"
    )


def build_recommendation_prompt(
    profile: UserProfile,
    candidates: Sequence[Product],
    user_name: str,
    *,
    today: Optional[date] = None,
) -> str:
    products = "\n\n".join(_product_block(i, p) for i, p in enumerate(candidates, start=1))
    return (
        "You are an expert e-commerce product recommendation assistant for ShopSmart.\n\n"
        f"{_profile_block(profile, user_name, today)}\n\n"
        f"**Available Products ({len(candidates)} items):**\n"
        f"{products}\n\n"
        "**Task:**\n"
        "Analyze the user's profile and recommend the TOP 10-15 most relevant products from the list above.\n\n"
        "For each recommendation, provide:\n"
        "1. Product ID\n"
        "2. A personalized explanation (2-3 sentences) of WHY this product is perfect for THIS specific user\n"
        "3. Relevance score (0-100) based on how well it matches the user's profile\n"
        "4. 2-4 specific match reasons (e.g., \"Matches fitness interest\", \"Within preferred price range\")\n\n"
        "**Important Guidelines:**\n"
        "- Prioritize products that match the user's favorite categories\n"
        "- Consider the user's lifestyle, interests, and shopping habits\n"
        "- Pay attention to their recent search history - recommend products related to what they've been searching for\n"
        "- Ensure price recommendations align with their budget preference\n"
        "- Provide genuine, personalized explanations - not generic descriptions\n"
        "- Rank by relevance score (highest first)\n\n"
        "Return your response in this exact JSON format:\n"
        f"{OUTPUT_FORMAT}"
    )
