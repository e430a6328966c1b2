"""
Unsplash

Searches and collections on unsplash.com. Supported web URLs:

    https://unsplash.com/s/photos/{term}            -> https://api.unsplash.com/search/photos?query={term}
    https://unsplash.com/collections/{id}/{slug}    -> https://api.unsplash.com/collections/{id}/photos

Query parameters of search and collection pages (orientation, color, ...) are kept. Single photo pages
(/photos/{id}) are not queries and are not supported.

Requests are authenticated with the application's access key in an
"Authorization: Client-ID" header. Search answers with a wrapper object, collections with a
bare list of photos.

API reference: https://unsplash.com/documentation
"""

import re
from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from wallquery.fetch_client import NormalizedImage
from wallquery.patterns import ProviderPattern
from wallquery.patterns import ProviderPatternTable
from wallquery.providers.base import Provider
from wallquery.providers.base import expect_list
from wallquery.providers.base import expect_object
from wallquery.providers.base import text_of


API_BASE_URL = "https://api.unsplash.com"
API_SEARCH_URL = API_BASE_URL + "/search/photos"
API_COLLECTION_URL = API_BASE_URL + "/collections/{id}/photos"
API_PHOTO_URL = API_BASE_URL + "/photos/{id}"

API_KEY_PREF_KEY = "unsplash_access_key"
PER_PAGE = "30"


UNSPLASH_PATTERNS = ProviderPatternTable(
    provider="Unsplash",
    patterns=(
        ProviderPattern(
            name="search",
            regex=re.compile(
                r"^https://(?:www\.)?unsplash\.com/s/photos/(?P<term>[^/?#]+)/?(?P<query>\?.*)?$"
            ),
            template=API_SEARCH_URL,
            path_params=(("query", "term"),),
        ),
        ProviderPattern(
            name="collection",
            regex=re.compile(
                r"^https://(?:www\.)?unsplash\.com/collections/(?P<id>[a-zA-Z0-9_-]+)(?:/[^?#]*)?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
        ),
        ProviderPattern(
            name="API search",
            regex=re.compile(r"^https://api\.unsplash\.com/search/photos/?(?P<query>\?.*)?$"),
            template=API_SEARCH_URL,
        ),
        ProviderPattern(
            name="API collection",
            regex=re.compile(
                r"^https://api\.unsplash\.com/collections/(?P<id>[a-zA-Z0-9_-]+)/photos/?(?P<query>\?.*)?$"
            ),
            template=API_COLLECTION_URL,
        ),
    ),
    volatile_params=frozenset({"client_id", "per_page"}),
)


@dataclass
class User:
    username: str = ""
    name: str = ""

    @classmethod
    def from_json(cls, data) -> "User":
        if data is None:
            return cls()
        data = expect_object(data, "user")
        return cls(username=text_of(data, "username"), name=text_of(data, "name"))


@dataclass
class Photo:
    id: str
    full_url: str
    html_url: str = ""
    download_location: str = ""
    user: User = field(default_factory=User)

    @classmethod
    def from_json(cls, data) -> "Photo":
        data = expect_object(data, "photo")
        urls = expect_object(data["urls"], "urls")
        links = expect_object(data.get("links") or {}, "links")
        return cls(
            id=str(data["id"]),
            full_url=str(urls.get("full") or urls["raw"]),
            html_url=text_of(links, "html"),
            download_location=text_of(links, "download_location"),
            user=User.from_json(data.get("user")),
        )


@dataclass
class SearchResponse:
    total: int
    total_pages: int
    results: list

    @classmethod
    def from_json(cls, payload) -> "SearchResponse":
        payload = expect_object(payload, "search response")
        return cls(
            total=int(payload.get("total") or 0),
            total_pages=int(payload.get("total_pages") or 0),
            results=[Photo.from_json(item) for item in expect_list(payload["results"], "results")],
        )


class UnsplashProvider(Provider):

    name = "Unsplash"
    home_url = "https://unsplash.com"
    table = UNSPLASH_PATTERNS

    api_key_pref_key = API_KEY_PREF_KEY
    api_key_regexp = re.compile(r"^[a-zA-Z0-9_-]{43}$")
    api_key_hint = "43 character access key required"

    fetch_params = (("per_page", PER_PAGE),)

    def with_resolution(self, api_url: str, width: int, height: int) -> str:
        parts = urlsplit(api_url)
        if not parts.path.startswith("/search/photos") or width == height:
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
            headers["Authorization"] = f"Client-ID {api_key}"
        headers["Accept-Version"] = "v1"

    def decode_images(self, api_url: str, payload) -> list:
        if urlsplit(api_url).path.startswith("/search/photos"):
            photos = SearchResponse.from_json(payload).results
        else:
            photos = [Photo.from_json(item) for item in expect_list(payload, "photos")]

        return [self._to_image(photo) for photo in photos]

    def enrichment_request(self, image: NormalizedImage):
        headers = {}
        self.authenticate([], headers)
        return API_PHOTO_URL.format(id=quote(image.id, safe="")), headers

    def decode_enrichment(self, image: NormalizedImage, payload) -> NormalizedImage:
        photo = Photo.from_json(payload)
        attribution = photo.user.name or photo.user.username
        if not attribution:
            return image
        return replace(image, attribution=attribution)

    def _to_image(self, photo: Photo) -> NormalizedImage:
        return NormalizedImage(
            id=photo.id,
            path=photo.full_url,
            view_url=photo.html_url,
            attribution=photo.user.name or photo.user.username,
            provider=self.name,
            file_type="image/jpeg",
            download_location=photo.download_location,
        )
