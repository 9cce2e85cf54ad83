"""Integer arithmetic for credits and currency.

Credits are non-negative ints. Monetary values are ints in minor units
(paise, 1 INR = 100 paise). No float, no Decimal.
"""

from dataclasses import dataclass

from src.hv_common.enums import PriceTier

MIN_SONG_PRICE = 5
MAX_SONG_PRICE = 50


def validate_song_price(price: int) -> None:
    """Validate that a song price is in the range [5, 50] credits."""
    if not (MIN_SONG_PRICE <= price <= MAX_SONG_PRICE):
        raise ValueError(
            f"Price must be between {MIN_SONG_PRICE} and {MAX_SONG_PRICE} credits, got {price}"
        )


def price_tier(price: int) -> PriceTier:
    """Derive the price band: <=15 -> X, 16-30 -> Y, 31-50 -> Z."""
    validate_song_price(price)
    if price <= 15:
        return PriceTier.X
    if price <= 30:
        return PriceTier.Y
    return PriceTier.Z


def minor_to_display(minor: int) -> str:
    """Convert paise to display string: 1280 -> '₹12.80', -880 -> '-₹8.80'."""
    if minor < 0:
        abs_minor = -minor
        return f"-₹{abs_minor // 100:,}.{abs_minor % 100:02d}"
    return f"₹{minor // 100:,}.{minor % 100:02d}"


@dataclass(frozen=True)
class RevenueSplit:
    """Accounting entry only; no money moves until settlement."""

    amount_minor: int
    artist_share_minor: int
    platform_cut_minor: int

    def negated(self) -> "RevenueSplit":
        return RevenueSplit(
            amount_minor=-self.amount_minor,
            artist_share_minor=-self.artist_share_minor,
            platform_cut_minor=-self.platform_cut_minor,
        )


ZERO_SPLIT = RevenueSplit(0, 0, 0)


def split_revenue(credits: int, credit_value_minor: int, artist_share_bps: int) -> RevenueSplit:
    """Monetary value of `credits` and its artist/platform split.

    artist = floor(value * bps / 10000); the platform cut takes the remainder
    so the two parts always sum to the value.
    """
    if credits < 0:
        raise ValueError(f"credits must be >= 0, got {credits}")
    if not (0 <= artist_share_bps <= 10000):
        raise ValueError(f"artist_share_bps must be 0-10000, got {artist_share_bps}")
    amount = credits * credit_value_minor
    artist = amount * artist_share_bps // 10000
    return RevenueSplit(
        amount_minor=amount,
        artist_share_minor=artist,
        platform_cut_minor=amount - artist,
    )
