"""Watch provider data models."""

from attrs import define, field, frozen


@define
class WatchProvider:
    """Represents a streaming service offering a movie in one region."""

    provider_id: int
    provider_name: str
    logo_path: str | None = None
    display_priority: int | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "WatchProvider":
        return cls(
            provider_id=data["provider_id"],
            provider_name=data.get("provider_name", ""),
            logo_path=data.get("logo_path"),
            display_priority=data.get("display_priority"),
        )


@define
class RegionAvailability:
    """Offers for a single region, split by tier."""

    link: str | None = None
    flatrate: list[WatchProvider] = field(factory=list)
    rent: list[WatchProvider] = field(factory=list)
    buy: list[WatchProvider] = field(factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "RegionAvailability":
        def offers(tier: str) -> list[WatchProvider]:
            return [WatchProvider.from_payload(p) for p in data.get(tier) or []]

        return cls(
            link=data.get("link") or None,
            flatrate=offers("flatrate"),
            rent=offers("rent"),
            buy=offers("buy"),
        )

    def tier(self, name: str) -> list[WatchProvider]:
        return getattr(self, name)


@frozen
class ProviderOffer:
    """A resolved, clickable place to watch a movie."""

    url: str
    provider_name: str
    region: str


@frozen
class WatchLink:
    """Where to send the user: a provider offer or a web search fallback."""

    url: str
    provider_name: str | None = None
    region: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.provider_name is None
