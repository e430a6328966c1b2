"""
Wallhaven

wallhaven.cc searches and collections. Supported web URLs:

    https://wallhaven.cc/search?q=cats&categories=110      -> /api/v1/search?categories=110&q=cats
    https://wallhaven.cc/user/{user}/favorites/{id}         -> /api/v1/collections/{user}/{id}
    https://wallhaven.cc/favorites/{id}                     -> /api/v1/collections/{username}/{id}

The last shape is the signed in user's own favorites page, which carries no username. It is
rewritten with the "wallhaven_username" preference and rejected when that is not set.
API URLs (/api/v1/search, /api/v1/collections/{user}/{id}) are accepted as they are.

The API key is sent as the "apikey" query parameter. Search results carry no uploader, so
images from a search come back without attribution; the enricher looks it up per image via
/api/v1/w/{id}.

API reference: https://wallhaven.cc/help/api
"""

import re
from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from wallquery.context import FetchContext
from wallquery.errors import InvalidAPIKey
from wallquery.errors import ProviderError
from wallquery.fetch_client import NormalizedImage
from wallquery.fetch_client import send
from wallquery.patterns import ProviderPattern
from wallquery.patterns import ProviderPatternTable
from wallquery.providers.base import Provider
from wallquery.providers.base import expect_list
from wallquery.providers.base import expect_object
from wallquery.providers.base import text_of


API_BASE_URL = "https://wallhaven.cc/api/v1"
API_SEARCH_URL = API_BASE_URL + "/search"
API_COLLECTION_URL = API_BASE_URL + "/collections/{user}/{id}"
API_WALLPAPER_URL = API_BASE_URL + "/w/{id}"
API_SETTINGS_URL = API_BASE_URL + "/settings"

API_KEY_PREF_KEY = "wallhaven_api_key"
USERNAME_PREF_KEY = "wallhaven_username"

# resolution constraints a query may already carry
RESOLUTION_PARAMS = ("atleast", "resolutions", "ratios")


WALLHAVEN_PATTERNS = ProviderPatternTable(
    provider="Wallhaven",
    patterns=(
        ProviderPattern(
            name="user favorites",
            regex=re.compile(
                r"^https://wallhaven\.cc/user/(?P<user>[a-zA-Z0-9_]+)/favorites/(?P<id>[0-9]+)/?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
        ),
        ProviderPattern(
            name="own favorites",
            regex=re.compile(
                r"^https://wallhaven\.cc/favorites/(?P<id>[0-9]+)/?(?P<query>\?.*)?$"
            ),
            template=API_BASE_URL + "/collections/{username}/{id}",
        ),
        ProviderPattern(
            name="search",
            regex=re.compile(r"^https://wallhaven\.cc/search/?(?P<query>\?.*)?$"),
            template=API_SEARCH_URL,
        ),
        ProviderPattern(
            name="API collection",
            regex=re.compile(
                r"^https://wallhaven\.cc/api/v1/collections/(?P<user>[a-zA-Z0-9_]+)/(?P<id>[0-9]+)/?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
        ),
        ProviderPattern(
            name="API search",
            regex=re.compile(r"^https://wallhaven\.cc/api/v1/search/?(?P<query>\?.*)?$"),
            template=API_SEARCH_URL,
        ),
    ),
)


@dataclass
class Uploader:
    username: str = ""

    @classmethod
    def from_json(cls, data) -> "Uploader":
        if data is None:
            return cls()
        return cls(username=text_of(expect_object(data, "uploader"), "username"))


@dataclass
class Wallpaper:
    """One wallpaper as listed by the search, collection and wallpaper endpoints."""

    id: str
    path: str
    short_url: str = ""
    file_type: str = ""
    resolution: str = ""
    uploader: Uploader = field(default_factory=Uploader)

    @classmethod
    def from_json(cls, data) -> "Wallpaper":
        data = expect_object(data, "wallpaper")
        return cls(
            id=str(data["id"]),
            path=str(data["path"]),
            short_url=text_of(data, "short_url"),
            file_type=text_of(data, "file_type"),
            resolution=text_of(data, "resolution"),
            uploader=Uploader.from_json(data.get("uploader")),
        )


@dataclass
class Meta:
    current_page: int = 1
    last_page: int = 1

    @classmethod
    def from_json(cls, data) -> "Meta":
        if data is None:
            return cls()
        data = expect_object(data, "meta")
        return cls(
            current_page=int(data.get("current_page") or 1),
            last_page=int(data.get("last_page") or 1),
        )


@dataclass
class ListingResponse:
    """Response of /search and /collections/{user}/{id}."""

    data: list
    meta: Meta

    @classmethod
    def from_json(cls, payload) -> "ListingResponse":
        payload = expect_object(payload, "response")
        return cls(
            data=[Wallpaper.from_json(item) for item in expect_list(payload["data"], "data")],
            meta=Meta.from_json(payload.get("meta")),
        )


@dataclass
class WallpaperResponse:
    """Response of /w/{id}."""

    data: Wallpaper

    @classmethod
    def from_json(cls, payload) -> "WallpaperResponse":
        payload = expect_object(payload, "response")
        return cls(data=Wallpaper.from_json(payload["data"]))


class WallhavenProvider(Provider):

    name = "Wallhaven"
    home_url = "https://wallhaven.cc"
    table = WALLHAVEN_PATTERNS

    api_key_pref_key = API_KEY_PREF_KEY
    api_key_regexp = re.compile(r"^[a-zA-Z0-9]{32}$")
    api_key_hint = "32 alphanumeric characters required"

    def url_params(self) -> dict:
        username = self.config.get_string(USERNAME_PREF_KEY, "").strip()
        return {"username": username} if username else {}

    def with_resolution(self, api_url: str, width: int, height: int) -> str:
        parts = urlsplit(api_url)
        pairs = parse_qsl(parts.query, keep_blank_values=True)

        if any(key in RESOLUTION_PARAMS for key, _ in pairs):
            return api_url

        pairs.append(("atleast", f"{width}x{height}"))
        pairs.sort(key=lambda pair: pair[0])
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), ""))

    def authenticate(self, params: list, headers: dict) -> None:
        api_key = self.api_key()
        if api_key:
            params.append(("apikey", api_key))

    def decode_images(self, api_url: str, payload) -> list:
        response = ListingResponse.from_json(payload)
        return [self._to_image(item) for item in response.data]

    def enrichment_request(self, image: NormalizedImage):
        url = API_WALLPAPER_URL.format(id=quote(image.id, safe=""))

        api_key = self.api_key()
        if api_key:
            url = f"{url}?{urlencode({'apikey': api_key})}"

        return url, {}

    def decode_enrichment(self, image: NormalizedImage, payload) -> NormalizedImage:
        wallpaper = WallpaperResponse.from_json(payload).data
        if not wallpaper.uploader.username:
            return image
        return replace(image, attribution=wallpaper.uploader.username)

    def check_api_key(self, ctx: FetchContext, transport, key: str) -> bool:
        key = self.validate_api_key(key)
        url = f"{API_SETTINGS_URL}?{urlencode({'apikey': key})}"

        try:
            send(transport, ctx, self.name, url)
        except ProviderError as error:
            if error.is_unauthorized:
                raise InvalidAPIKey(f"{self.name} rejected the API key") from error
            raise

        return True

    def _to_image(self, item: Wallpaper) -> NormalizedImage:
        return NormalizedImage(
            id=item.id,
            path=item.path,
            view_url=item.short_url,
            attribution=item.uploader.username,
            provider=self.name,
            file_type=item.file_type,
        )
