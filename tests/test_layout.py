import pytest

from asset_mirror import PathDeriver, Settings, UrlPolicy, sanitize_filename, write_file

SITE = "http://example.com/"


def test_policy_rejects_non_http_schemes():
    policy = UrlPolicy(SITE, Settings())
    assert not policy.should_download("ftp://example.com/a.png", 0, True)


def test_policy_accepts_each_url_once():
    policy = UrlPolicy(SITE, Settings())
    assert policy.should_download("http://example.com/a.png", 0, True)
    assert not policy.should_download("http://example.com/a.png", 0, True)


def test_policy_external_assets_follow_same_origin_setting():
    strict = UrlPolicy(SITE, Settings(same_origin_only=True))
    loose = UrlPolicy(SITE, Settings(same_origin_only=False))
    assert not strict.should_download("https://cdn.other.net/x.js", 0, True)
    assert loose.should_download("https://cdn.other.net/x.js", 0, True)


def test_policy_never_accepts_external_pages():
    policy = UrlPolicy(SITE, Settings(same_origin_only=False))
    assert not policy.should_download("https://other.net/", 0, False)


def test_policy_max_depth_applies_to_pages():
    policy = UrlPolicy(SITE, Settings(max_depth=2))
    assert policy.should_download("http://example.com/a", 1, False)
    assert not policy.should_download("http://example.com/b", 2, False)
    assert policy.should_download("http://example.com/c.png", 2, True)


def test_policy_include_and_exclude():
    policy = UrlPolicy(SITE, Settings(include=r"/static/", exclude=r"\.mp4$"))
    assert policy.should_download("http://example.com/static/a.png", 0, True)
    assert not policy.should_download("http://example.com/img/a.png", 0, True)
    assert not policy.should_download("http://example.com/static/v.mp4", 0, True)


@pytest.mark.parametrize(
    "url, is_page, expected",
    [
        ("http://example.com/", True, "example.com/index.html"),
        ("http://example.com", True, "example.com/index.html"),
        ("http://example.com/docs", True, "example.com/docs/index.html"),
        ("http://example.com/docs/", True, "example.com/docs/index.html"),
        ("http://example.com/docs/guide.html", True, "example.com/docs/guide.html"),
        ("http://example.com/css/a%20b.css?v=1", False, "example.com/css/a b.css"),
        ("https://cdn.net:8443/lib/x.js", False, "example.com/_cdn.net_8443/lib/x.js"),
        ("http://example.com/fonts/", False, "example.com/fonts/index"),
    ],
)
def test_file_path(tmp_path, url, is_page, expected):
    assert PathDeriver(SITE, tmp_path).file_path(url, is_page) == tmp_path / expected


def test_file_path_stays_inside_the_site_folder(tmp_path):
    path = PathDeriver(SITE, tmp_path).file_path("http://example.com/../../etc/passwd")
    assert tmp_path / "example.com" in path.parents


def test_local_reference_is_relative_and_quoted(tmp_path):
    paths = PathDeriver(SITE, tmp_path)
    assert (
        paths.local_reference("http://example.com/blog/post", "http://example.com/img/a b.png", from_page=True)
        == "../../img/a%20b.png"
    )
    assert paths.local_reference("http://example.com/css/site.css", "http://example.com/css/bg.png") == "bg.png"


def test_write_file_creates_parents_and_replaces(tmp_path):
    target = tmp_path / "a" / "b" / "c.bin"
    write_file(target, b"one")
    write_file(target, b"two")
    assert target.read_bytes() == b"two"
    assert [p.name for p in target.parent.iterdir()] == ["c.bin"]


def test_sanitize_filename_replaces_control_characters():
    assert sanitize_filename("a\x00b\x1fc.png") == "a_b_c.png"
