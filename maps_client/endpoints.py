"""Request endpoints: immutable request values that describe one wire call"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, TypeVar

import orjson

from .config import (
    FIELD_MASK_HEADER,
    LEGACY_BASE_URL,
    PLACES_BASE_URL,
    TEXT_SEARCH_MAX_PAGE_SIZE,
)
from .exceptions import DecodingError, ValidationError
from .models import Api, ErrorModel, Response
from .pagination import validate_session_token

E = TypeVar("E", bound="Endpoint")


@dataclass(frozen=True)
class LatLng:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude {self.latitude} out of range")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude {self.longitude} out of range")

    def to_query(self) -> str:
        return f"{self.latitude},{self.longitude}"

    def to_json(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Circle:
    center: LatLng
    radius: float = 0.0

    def to_json(self) -> Dict[str, Any]:
        return {"circle": {"center": self.center.to_json(), "radius": self.radius}}


@dataclass(frozen=True)
class Rectangle:
    low: LatLng
    high: LatLng

    def to_json(self) -> Dict[str, Any]:
        return {"rectangle": {"low": self.low.to_json(), "high": self.high.to_json()}}


@dataclass(frozen=True)
class Endpoint(ABC):
    """
    Base for every request.

    Requests are frozen; builders return updated copies, so a request can be
    stored as a continuation snapshot without holding a client.
    """

    apis: ClassVar[Tuple[Api, ...]]
    error_model: ClassVar[ErrorModel]
    method: ClassVar[str] = "GET"
    title: ClassVar[str] = "request"

    def scopes(self) -> FrozenSet[Api]:
        return frozenset((Api.ALL,) + self.apis)

    @abstractmethod
    def url(self) -> str:
        ...

    def params(self) -> Dict[str, str]:
        return {}

    def headers(self) -> Dict[str, str]:
        return {}

    def body(self) -> Optional[bytes]:
        return None

    def validate(self) -> None:
        pass

    @abstractmethod
    def decode(self, payload: Dict[str, Any]) -> Response:
        ...

    def replace(self: E, **changes) -> E:
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe snapshot of the request parameters"""
        return orjson.loads(orjson.dumps(self))


def _items(payload: Dict[str, Any], key: str) -> list:
    items = payload.get(key, [])
    if not isinstance(items, list):
        raise DecodingError(f"expected a list under '{key}', got {type(items).__name__}")
    return items


def _page_token(payload: Dict[str, Any]) -> Optional[str]:
    return payload.get("next_page_token") or payload.get("nextPageToken") or None


def _check_location_fields(request) -> None:
    if request.location_bias is not None and request.location_restriction is not None:
        raise ValidationError("cannot set both location bias and location restriction")


# ---------------------------------------------------------------------------
# Legacy web services


@dataclass(frozen=True)
class GeocodingRequest(Endpoint):
    """Forward geocoding against the legacy Geocoding API"""

    apis: ClassVar[Tuple[Api, ...]] = (Api.GEOCODING,)
    error_model: ClassVar[ErrorModel] = ErrorModel.LEGACY
    title: ClassVar[str] = "Geocoding API"

    address: Optional[str] = None
    place_id: Optional[str] = None
    language: Optional[str] = None
    region: Optional[str] = None

    def with_address(self, address: str) -> "GeocodingRequest":
        return self.replace(address=address)

    def with_place_id(self, place_id: str) -> "GeocodingRequest":
        return self.replace(place_id=place_id)

    def with_language(self, language: str) -> "GeocodingRequest":
        return self.replace(language=language)

    def with_region(self, region: str) -> "GeocodingRequest":
        return self.replace(region=region)

    def url(self) -> str:
        return f"{LEGACY_BASE_URL}/geocode/json"

    def validate(self) -> None:
        if not self.address and not self.place_id:
            raise ValidationError("geocoding requires an address or a place_id")
        if self.address and self.place_id:
            raise ValidationError("cannot set both address and place_id")

    def params(self) -> Dict[str, str]:
        params = {}
        if self.address:
            params["address"] = self.address
        if self.place_id:
            params["place_id"] = self.place_id
        if self.language:
            params["language"] = self.language
        if self.region:
            params["region"] = self.region
        return params

    def decode(self, payload: Dict[str, Any]) -> Response:
        return Response(items=_items(payload, "results"), raw=payload)


@dataclass(frozen=True)
class NearbySearchRequest(Endpoint):
    """Nearby search against the legacy Places API"""

    apis: ClassVar[Tuple[Api, ...]] = (Api.PLACES,)
    error_model: ClassVar[ErrorModel] = ErrorModel.LEGACY
    title: ClassVar[str] = "Places API Nearby Search"

    location: Optional[LatLng] = None
    radius: Optional[float] = None
    keyword: Optional[str] = None
    place_type: Optional[str] = None
    language: Optional[str] = None
    rank_by_distance: bool = False
    page_token: Optional[str] = None

    def with_keyword(self, keyword: str) -> "NearbySearchRequest":
        return self.replace(keyword=keyword)

    def with_type(self, place_type: str) -> "NearbySearchRequest":
        return self.replace(place_type=place_type)

    def with_language(self, language: str) -> "NearbySearchRequest":
        return self.replace(language=language)

    def with_page_token(self, page_token: Optional[str]) -> "NearbySearchRequest":
        return self.replace(page_token=page_token)

    def url(self) -> str:
        return f"{LEGACY_BASE_URL}/place/nearbysearch/json"

    def validate(self) -> None:
        if self.page_token:
            return
        if self.location is None:
            raise ValidationError("nearby search requires a location")
        if self.rank_by_distance:
            if self.radius is not None:
                raise ValidationError("radius must not be set when ranking by distance")
            if not (self.keyword or self.place_type):
                raise ValidationError("ranking by distance requires a keyword or type")
        elif self.radius is None or self.radius <= 0:
            raise ValidationError("nearby search requires a positive radius")

    def params(self) -> Dict[str, str]:
        # The page token alone selects the next page; other parameters are ignored
        if self.page_token:
            return {"pagetoken": self.page_token}
        params = {"location": self.location.to_query()}
        if self.radius is not None:
            params["radius"] = f"{self.radius:g}"
        if self.rank_by_distance:
            params["rankby"] = "distance"
        if self.keyword:
            params["keyword"] = self.keyword
        if self.place_type:
            params["type"] = self.place_type
        if self.language:
            params["language"] = self.language
        return params

    def decode(self, payload: Dict[str, Any]) -> Response:
        return Response(
            items=_items(payload, "results"),
            next_page_token=_page_token(payload),
            raw=payload,
        )


# ---------------------------------------------------------------------------
# Places API (New)


@dataclass(frozen=True)
class TextSearchRequest(Endpoint):
    """Text search against Places API (New)"""

    apis: ClassVar[Tuple[Api, ...]] = (Api.PLACES_NEW, Api.TEXT_SEARCH)
    error_model: ClassVar[ErrorModel] = ErrorModel.RPC
    method: ClassVar[str] = "POST"
    title: ClassVar[str] = "Places API (New) Text Search"

    text_query: str = ""
    field_mask: Tuple[str, ...] = ("*",)
    included_type: Optional[str] = None
    language: Optional[str] = None
    region: Optional[str] = None
    location_bias: Optional[Circle] = None
    location_restriction: Optional[Rectangle] = None
    min_rating: Optional[float] = None
    open_now: Optional[bool] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    rank_preference: Optional[str] = None
    strict_type_filtering: Optional[bool] = None

    def with_field_mask(self, *fields: str) -> "TextSearchRequest":
        return self.replace(field_mask=tuple(fields))

    def with_location_bias(self, bias: Circle) -> "TextSearchRequest":
        return self.replace(location_bias=bias)

    def with_location_restriction(self, restriction: Rectangle) -> "TextSearchRequest":
        return self.replace(location_restriction=restriction)

    def with_page_size(self, page_size: int) -> "TextSearchRequest":
        return self.replace(page_size=page_size)

    def with_page_token(self, page_token: Optional[str]) -> "TextSearchRequest":
        return self.replace(page_token=page_token)

    def with_language(self, language: str) -> "TextSearchRequest":
        return self.replace(language=language)

    def url(self) -> str:
        return f"{PLACES_BASE_URL}/places:searchText"

    def validate(self) -> None:
        if not self.text_query:
            raise ValidationError("text search requires a text query")
        if not self.field_mask:
            raise ValidationError("field mask cannot be empty, specify at least one field to return")
        _check_location_fields(self)
        if self.page_size is not None and not 1 <= self.page_size <= TEXT_SEARCH_MAX_PAGE_SIZE:
            raise ValidationError(
                f"page size must be between 1 and {TEXT_SEARCH_MAX_PAGE_SIZE}, got {self.page_size}"
            )
        if self.min_rating is not None and not 0.0 <= self.min_rating <= 5.0:
            raise ValidationError(f"min rating must be between 0 and 5, got {self.min_rating}")

    def headers(self) -> Dict[str, str]:
        fields = list(self.field_mask)
        # Without nextPageToken in the mask the server never returns one
        if "*" not in fields and "nextPageToken" not in fields:
            fields.append("nextPageToken")
        return {
            "Content-Type": "application/json",
            FIELD_MASK_HEADER: ",".join(fields),
        }

    def body(self) -> bytes:
        body: Dict[str, Any] = {"textQuery": self.text_query}
        if self.included_type is not None:
            body["includedType"] = self.included_type
        if self.language is not None:
            body["languageCode"] = self.language
        if self.region is not None:
            body["regionCode"] = self.region
        if self.location_bias is not None:
            body["locationBias"] = self.location_bias.to_json()
        if self.location_restriction is not None:
            body["locationRestriction"] = self.location_restriction.to_json()
        if self.min_rating is not None:
            body["minRating"] = self.min_rating
        if self.open_now is not None:
            body["openNow"] = self.open_now
        if self.page_size is not None:
            body["pageSize"] = self.page_size
        if self.page_token is not None:
            body["pageToken"] = self.page_token
        if self.rank_preference is not None:
            body["rankPreference"] = self.rank_preference
        if self.strict_type_filtering is not None:
            body["strictTypeFiltering"] = self.strict_type_filtering
        return orjson.dumps(body)

    def decode(self, payload: Dict[str, Any]) -> Response:
        return Response(
            items=_items(payload, "places"),
            next_page_token=_page_token(payload),
            raw=payload,
        )


@dataclass(frozen=True)
class AutocompleteRequest(Endpoint):
    """Autocomplete against Places API (New); continued per keystroke via a session token"""

    apis: ClassVar[Tuple[Api, ...]] = (Api.PLACES_NEW, Api.AUTOCOMPLETE)
    error_model: ClassVar[ErrorModel] = ErrorModel.RPC
    method: ClassVar[str] = "POST"
    title: ClassVar[str] = "Places API (New) Autocomplete"

    input: str = ""
    session_token: Optional[str] = None
    included_primary_types: Tuple[str, ...] = ()
    included_region_codes: Tuple[str, ...] = ()
    language: Optional[str] = None
    region: Optional[str] = None
    location_bias: Optional[Circle] = None
    location_restriction: Optional[Rectangle] = None
    origin: Optional[LatLng] = None
    input_offset: Optional[int] = None
    include_query_predictions: Optional[bool] = None

    def with_input(self, text: str) -> "AutocompleteRequest":
        return self.replace(input=text)

    def with_session_token(self, session_token: str) -> "AutocompleteRequest":
        return self.replace(session_token=session_token)

    def with_location_bias(self, bias: Circle) -> "AutocompleteRequest":
        return self.replace(location_bias=bias)

    def with_location_restriction(self, restriction: Rectangle) -> "AutocompleteRequest":
        return self.replace(location_restriction=restriction)

    def with_language(self, language: str) -> "AutocompleteRequest":
        return self.replace(language=language)

    def url(self) -> str:
        return f"{PLACES_BASE_URL}/places:autocomplete"

    def validate(self) -> None:
        if not self.input:
            raise ValidationError("autocomplete requires non-empty input")
        _check_location_fields(self)
        if self.session_token is not None:
            validate_session_token(self.session_token)
        if self.input_offset is not None and not 0 <= self.input_offset <= len(self.input):
            raise ValidationError("input offset must fall within the input")

    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def body(self) -> bytes:
        body: Dict[str, Any] = {"input": self.input}
        if self.session_token is not None:
            body["sessionToken"] = self.session_token
        if self.included_primary_types:
            body["includedPrimaryTypes"] = list(self.included_primary_types)
        if self.included_region_codes:
            body["includedRegionCodes"] = list(self.included_region_codes)
        if self.language is not None:
            body["languageCode"] = self.language
        if self.region is not None:
            body["regionCode"] = self.region
        if self.location_bias is not None:
            body["locationBias"] = self.location_bias.to_json()
        if self.location_restriction is not None:
            body["locationRestriction"] = self.location_restriction.to_json()
        if self.origin is not None:
            body["origin"] = self.origin.to_json()
        if self.input_offset is not None:
            body["inputOffset"] = self.input_offset
        if self.include_query_predictions is not None:
            body["includeQueryPredictions"] = self.include_query_predictions
        return orjson.dumps(body)

    def decode(self, payload: Dict[str, Any]) -> Response:
        return Response(items=_items(payload, "suggestions"), raw=payload)


@dataclass(frozen=True)
class PlaceDetailsRequest(Endpoint):
    """Place details against Places API (New). Terminates an autocomplete session."""

    apis: ClassVar[Tuple[Api, ...]] = (Api.PLACES_NEW, Api.PLACE_DETAILS)
    error_model: ClassVar[ErrorModel] = ErrorModel.RPC
    title: ClassVar[str] = "Places API (New) Place Details"

    place_id: str = ""
    field_mask: Tuple[str, ...] = ("*",)
    session_token: Optional[str] = None
    language: Optional[str] = None
    region: Optional[str] = None

    def with_field_mask(self, *fields: str) -> "PlaceDetailsRequest":
        return self.replace(field_mask=tuple(fields))

    def with_session_token(self, session_token: Optional[str]) -> "PlaceDetailsRequest":
        return self.replace(session_token=session_token)

    def url(self) -> str:
        return f"{PLACES_BASE_URL}/places/{self.place_id}"

    def validate(self) -> None:
        if not self.place_id:
            raise ValidationError("place details requires a place id")
        if not self.field_mask:
            raise ValidationError("field mask cannot be empty, specify at least one field to return")
        if self.session_token is not None:
            validate_session_token(self.session_token)

    def headers(self) -> Dict[str, str]:
        return {FIELD_MASK_HEADER: ",".join(self.field_mask)}

    def params(self) -> Dict[str, str]:
        params = {}
        if self.session_token is not None:
            params["sessionToken"] = self.session_token
        if self.language is not None:
            params["languageCode"] = self.language
        if self.region is not None:
            params["regionCode"] = self.region
        return params

    def decode(self, payload: Dict[str, Any]) -> Response:
        return Response(items=[payload], raw=payload)
