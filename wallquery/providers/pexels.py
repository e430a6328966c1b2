"""
Pexels

Searches and collections on pexels.com. Supported web URLs:

    https://www.pexels.com/search/{term}/            -> https://api.pexels.com/v1/search?query={term}
    https://www.pexels.com/collections/{slug}-{id}/  -> https://api.pexels.com/v1/collections/{id}

Of a search page's query string only the filters the API understands (orientation, size,
color) are kept. The API key goes in the Authorization header as is.
"""

import re
from dataclasses import dataclass, replace
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from wallquery.fetch_client import NormalizedImage
from wallquery.patterns import ProviderPattern
from wallquery.patterns import ProviderPatternTable
from wallquery.providers.base import Provider
from wallquery.providers.base import expect_list
from wallquery.providers.base import expect_object
from wallquery.providers.base import text_of


API_BASE_URL = "https://api.pexels.com/v1"
API_SEARCH_URL = API_BASE_URL + "/search"
API_COLLECTION_URL = API_BASE_URL + "/collections/{id}"
API_PHOTO_URL = API_BASE_URL + "/photos/{id}"

API_KEY_PREF_KEY = "pexels_api_key"
PER_PAGE = "30"

SEARCH_FILTERS = frozenset({"orientation", "size", "color"})


PEXELS_PATTERNS = ProviderPatternTable(
    provider="Pexels",
    patterns=(
        ProviderPattern(
            name="search",
            regex=re.compile(
                r"^https://(?:www\.)?pexels\.com/search/(?P<term>[^/?#]+)/?(?P<query>\?.*)?$"
            ),
            template=API_SEARCH_URL,
            allowed_params=SEARCH_FILTERS,
            path_params=(("query", "term"),),
        ),
        ProviderPattern(
            name="collection",
            regex=re.compile(
                r"^https://(?:www\.)?pexels\.com/collections/(?:[^/?#]*-)?(?P<id>[a-zA-Z0-9]+)/?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
            keep_query=False,
        ),
        ProviderPattern(
            name="API search",
            regex=re.compile(r"^https://api\.pexels\.com/v1/search/?(?P<query>\?.*)?$"),
            template=API_SEARCH_URL,
        ),
        ProviderPattern(
            name="API collection",
            regex=re.compile(
                r"^https://api\.pexels\.com/v1/collections/(?P<id>[a-zA-Z0-9]+)/?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
        ),
    ),
    volatile_params=frozenset({"per_page"}),
)


@dataclass
class Photo:
    id: str
    url: str
    photographer: str
    original: str
    type: str = "Photo"

    @classmethod
    def from_json(cls, data) -> "Photo":
        data = expect_object(data, "photo")
        src = expect_object(data["src"], "src")
        return cls(
            id=str(data["id"]),
            url=text_of(data, "url"),
            photographer=text_of(data, "photographer"),
            original=str(src.get("original") or src["large2x"]),
            type=text_of(data, "type") or "Photo",
        )


@dataclass
class SearchResponse:
    page: int
    photos: list

    @classmethod
    def from_json(cls, payload) -> "SearchResponse":
        payload = expect_object(payload, "search response")
        return cls(
            page=int(payload.get("page") or 1),
            photos=[Photo.from_json(item) for item in expect_list(payload["photos"], "photos")],
        )


@dataclass
class CollectionResponse:
    id: str
    media: list

    @classmethod
    def from_json(cls, payload) -> "CollectionResponse":
        payload = expect_object(payload, "collection response")
        media = []
        for item in expect_list(payload["media"], "media"):
            # collections mix photos and videos
            if text_of(expect_object(item, "media"), "type") in ("", "Photo"):
                media.append(Photo.from_json(item))
        return cls(id=text_of(payload, "id"), media=media)


class PexelsProvider(Provider):

    name = "Pexels"
    home_url = "https://www.pexels.com"
    table = PEXELS_PATTERNS

    api_key_pref_key = API_KEY_PREF_KEY
    api_key_regexp = re.compile(r"^[a-zA-Z0-9-]{56}$")
    api_key_hint = "56 character API key required"

    fetch_params = (("per_page", PER_PAGE),)

    def with_resolution(self, api_url: str, width: int, height: int) -> str:
        parts = urlsplit(api_url)
        if not parts.path.startswith("/v1/search") or width == height:
            return api_url

        pairs = parse_qsl(parts.query, keep_blank_values=True)
        if any(key == "orientation" for key, _ in pairs):
            return api_url

        pairs.append(("orientation", "landscape" if width > height else "portrait"))
        pairs.sort(key=lambda pair: pair[0])
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), ""))

    def authenticate(self, params: list, headers: dict) -> None:
        api_key = self.api_key()
        if api_key:
            headers["Authorization"] = api_key

    def decode_images(self, api_url: str, payload) -> list:
        if urlsplit(api_url).path.startswith("/v1/search"):
            photos = SearchResponse.from_json(payload).photos
        else:
            photos = CollectionResponse.from_json(payload).media

        return [self._to_image(photo) for photo in photos]

    def enrichment_request(self, image: NormalizedImage):
        headers = {}
        self.authenticate([], headers)
        return API_PHOTO_URL.format(id=quote(image.id, safe="")), headers

    def decode_enrichment(self, image: NormalizedImage, payload) -> NormalizedImage:
        photo = Photo.from_json(payload)
        if not photo.photographer:
            return image
        return replace(image, attribution=photo.photographer)

    def _to_image(self, photo: Photo) -> NormalizedImage:
        return NormalizedImage(
            id=photo.id,
            path=photo.original,
            view_url=photo.url,
            attribution=photo.photographer,
            provider=self.name,
            file_type="image/jpeg",
        )
