import pytest

from asset_mirror import ExtractionError, HtmlIndex, ReferenceCategory

PAGE_URL = "http://example.com/site/index.html"

PAGE = """<!doctype html>
<html><head>
<link rel="stylesheet" href="css/main.css">
<link rel="canonical" href="http://example.com/site/">
<link rel="preload" as="script" href="preload.js">
<link rel="preload" as="font" href="fonts/a.woff2">
<link rel="shortcut icon" href="/favicon.ico">
<script src="js/app.js"></script>
<script>var inline = 1;</script>
<style>.a{background:url(img/a.png)} .b{background:url("data:image/png;base64,AAAA")}</style>
</head>
<body background="img/body.jpg">
<img src="img/one.png" srcset="img/one@2x.png 2x, img/one@3x.png 3x">
<picture><source srcset="img/wide.webp 800w"><img src="img/one.png#again"></picture>
<img data-src="img/lazy.png">
<img src="data:image/gif;base64,R0lGODlh">
<a href="other.html">other</a>
</body></html>
"""


@pytest.fixture
def index():
    return HtmlIndex.from_html(PAGE, PAGE_URL)


def test_link_references_are_limited_to_assets(index):
    assert index.urls(ReferenceCategory.LINK) == [
        "http://example.com/site/css/main.css",
        "http://example.com/site/fonts/a.woff2",
        "http://example.com/favicon.ico",
    ]


def test_script_references(index):
    assert index.urls(ReferenceCategory.SCRIPT) == ["http://example.com/site/js/app.js"]


def test_style_references_come_from_stylesheet_text(index):
    assert index.urls(ReferenceCategory.STYLE) == ["http://example.com/site/img/a.png"]


def test_body_background(index):
    assert index.urls(ReferenceCategory.BODY) == ["http://example.com/site/img/body.jpg"]


def test_image_references_keep_document_order(index):
    assert index.urls(ReferenceCategory.IMAGE) == [
        "http://example.com/site/img/one.png",
        "http://example.com/site/img/one@2x.png",
        "http://example.com/site/img/one@3x.png",
        "http://example.com/site/img/wide.webp",
        "http://example.com/site/img/one.png#again",
        "http://example.com/site/img/lazy.png",
    ]


def test_base_href_is_honored():
    index = HtmlIndex.from_html(
        '<html><head><base href="http://cdn.example.com/root/"></head>'
        '<body><script src="a.js"></script></body></html>',
        PAGE_URL,
    )
    assert index.urls(ReferenceCategory.SCRIPT) == ["http://cdn.example.com/root/a.js"]


def test_invalid_reference_reports_partial_result():
    index = HtmlIndex.from_html(
        '<body><img src="http://[::1/broken.png"><img src="ok.png"></body>', PAGE_URL
    )
    with pytest.raises(ExtractionError) as excinfo:
        index.urls(ReferenceCategory.IMAGE)
    assert excinfo.value.urls == ["http://example.com/site/ok.png"]


def test_unknown_category_is_an_extraction_error(index):
    with pytest.raises(ExtractionError):
        index.urls("iframe")
