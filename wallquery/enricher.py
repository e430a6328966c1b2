"""
Image Enricher

Fill in the attribution of an image that came back from a fetch without one, by looking the
image up on the provider's per-image endpoint. Enrichment is best effort: when the lookup
cannot be made or the provider answers with an error, the original image is returned and the
failure is only logged. Two things do surface:

- DecodeError, when the provider answered 2xx with a body that does not decode, since that
  points at an API change rather than a passing outage
- Canceled, when the caller gives up
"""

import logging

from wallquery.context import FetchContext
from wallquery.errors import DecodeError
from wallquery.errors import ProviderError
from wallquery.fetch_client import NormalizedImage
from wallquery.fetch_client import decode_json
from wallquery.fetch_client import send
from wallquery.transport import HttpTransport

logger = logging.getLogger(__name__)


class Enricher:
    def __init__(self, provider, transport: HttpTransport):
        self.provider = provider
        self.transport = transport

    def enrich(self, ctx: FetchContext, image: NormalizedImage) -> NormalizedImage:
        """Return image with its attribution filled in where possible."""

        if image.attribution:
            return image

        request = self.provider.enrichment_request(image)
        if request is None:
            return image

        url, headers = request

        try:
            response = send(self.transport, ctx, self.provider.name, url, headers)
        except ProviderError as error:
            logger.warning("%s enrichment failed for %s: %s", self.provider.name, image.id, error)
            return image

        payload = decode_json(self.provider.name, response)

        try:
            enriched = self.provider.decode_enrichment(image, payload)
        except (KeyError, TypeError, ValueError) as error:
            raise DecodeError(
                f"failed to decode {self.provider.name} enrichment response for {image.id}: {error!r}"
            ) from error

        if enriched.attribution:
            logger.debug(
                "Enriched %s image %s with uploader: %s",
                self.provider.name,
                image.id,
                enriched.attribution,
            )

        return enriched

    def enrich_all(self, ctx: FetchContext, images: list) -> list:
        """
        Enrich a page of images in order. A DecodeError for one image is logged and that image
        kept as it was, so one odd record does not cost the whole page. Canceled propagates.
        """

        enriched = []
        for image in images:
            try:
                enriched.append(self.enrich(ctx, image))
            except DecodeError as error:
                logger.error("%s", error)
                enriched.append(image)

        return enriched
