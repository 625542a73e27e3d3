from starlette.requests import Request

from image_variants.core.request_context import RequestContext
from image_variants.core.time_utils import format_http_date, parse_http_date


def _request(headers):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


def test_from_request_reads_only_needed_headers():
    ctx = RequestContext.from_request(_request({
        "If-Modified-Since": "Sun, 06 Nov 1994 08:49:37 GMT",
        "Accept": "image/webp",
        "User-Agent": "curl/8",
    }))
    assert ctx.if_modified_since == "Sun, 06 Nov 1994 08:49:37 GMT"
    assert ctx.if_modified_since_timestamp() == 784111777
    assert ctx.supports_webp
    assert ctx.request_time > 0


def test_webp_support_sniffing():
    assert not RequestContext(accept="image/png,*/*", user_agent="Firefox/115").supports_webp
    assert RequestContext(user_agent="Mozilla/5.0 Chrome/120.0").supports_webp
    assert not RequestContext(user_agent="HeadlessChrome/120.0").supports_webp


def test_http_dates():
    assert format_http_date(784111777) == "Sun, 06 Nov 1994 08:49:37 GMT"
    assert parse_http_date("Sun, 06 Nov 1994 08:49:37 GMT") == 784111777
    for bad in (None, "", "   ", "tomorrow", "Thu, 01 Jan 1970 00:00:00 GMT"):
        assert parse_http_date(bad) is None
