#!/usr/bin/env python3
import argparse
import logging
import os
import re
import signal
import sys
import threading
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from http.cookiejar import MozillaCookieJar
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union
from urllib.parse import quote, unquote, urldefrag, urljoin, urlparse, urlunparse

import filetype
import requests
from bs4 import BeautifulSoup
from bs4.element import Tag
from PIL import Image

# -------------------- Config --------------------

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.7",
}

CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^)\"']+)\1\s*\)", re.IGNORECASE)
SRCSET_SPLIT_RE = re.compile(r"\s*,\s*")
WS_RE = re.compile(r"\s+")
INVALID_FILENAME_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

CHUNK_SIZE = 64 * 1024


@dataclass
class Settings:
    timeout: float = 15.0
    max_bytes: int = 50_000_000

    # Eligibility
    same_origin_only: bool = True
    include: Optional[str] = None
    exclude: Optional[str] = None
    max_depth: int = 0

    # Images (0 keeps images untouched)
    image_quality: int = 0

    # Auth / session
    cookies_file: Optional[str] = None
    extra_headers: List[str] = field(default_factory=list)  # "Name: value"
    auth_basic: Optional[str] = None  # "user:pass"
    auth_bearer: Optional[str] = None


# -------------------- Errors --------------------


class MirrorError(Exception):
    pass


class ExtractionError(MirrorError):
    """Reference extraction failed; ``urls`` holds what was collected anyway."""

    def __init__(self, message: str, urls: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.urls: List[str] = list(urls or [])


class DownloadFailed(MirrorError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DownloadCancelled(MirrorError):
    def __init__(self, url: str):
        super().__init__(f"download cancelled: {url}")
        self.url = url


# -------------------- Types --------------------


class ReferenceCategory(str, Enum):
    BODY = "body"
    IMAGE = "img"
    LINK = "link"
    SCRIPT = "script"
    STYLE = "style"


# categories whose references also go through the image queue
QUEUED_CATEGORIES = (ReferenceCategory.BODY, ReferenceCategory.IMAGE)

CATEGORIES_WITH_REFERENCES = (
    ReferenceCategory.LINK,
    ReferenceCategory.SCRIPT,
    ReferenceCategory.STYLE,
    ReferenceCategory.BODY,
)


class Transform(Enum):
    NONE = "none"
    STYLESHEET = "stylesheet"
    IMAGE_RECODE = "image-recode"


Transformer = Callable[[str, bytes], bytes]


class AssetStatus(Enum):
    SKIPPED = "skipped"
    FETCHED = "fetched"
    FAILED = "failed"


class FailureKind(Enum):
    TRANSPORT = "transport"
    STORAGE = "storage"


@dataclass
class AssetResult:
    url: str
    status: AssetStatus
    path: Optional[Path] = None
    failure: Optional[FailureKind] = None


@dataclass
class PassReport:
    results: List[AssetResult] = field(default_factory=list)

    def add(self, result: AssetResult) -> None:
        self.results.append(result)

    def count(self, status: AssetStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def fetched(self) -> int:
        return self.count(AssetStatus.FETCHED)

    @property
    def skipped(self) -> int:
        return self.count(AssetStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(AssetStatus.FAILED)

    @property
    def storage_failures(self) -> int:
        return sum(1 for r in self.results if r.failure is FailureKind.STORAGE)


class AssetQueue:
    """Pending asset URLs of one page pass.

    Iterating with :meth:`drain` also visits entries appended while the
    drain is running, and empties the queue once every entry was visited.
    """

    def __init__(self) -> None:
        self._items: List[str] = []

    def append(self, url: str) -> None:
        self._items.append(url)

    def extend(self, urls: Iterable[str]) -> None:
        self._items.extend(urls)

    def drain(self) -> Iterator[str]:
        i = 0
        while i < len(self._items):
            yield self._items[i]
            i += 1
        self._items.clear()

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


# -------------------- Utils --------------------


def sanitize_filename(name: str) -> str:
    name = INVALID_FILENAME_CHARS_RE.sub("_", name)
    name = name or "file"
    if name.startswith("."):
        name = "_" + name[1:]
    return name[:200]


def can_fetch_url(u: Optional[str]) -> bool:
    if not u:
        return False
    u = u.strip()
    if not u:
        return False
    if u.lower().startswith(
        ("#", "mailto:", "tel:", "javascript:", "data:", "blob:")
    ):
        return False
    return True


def ensure_parent_dir(p: Path) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)


def file_exists(path: Path) -> bool:
    return path.is_file()


def write_file(path: Path, data: bytes) -> None:
    ensure_parent_dir(path)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)


def stylesheet_directory(css_url: str) -> str:
    p = urlparse(css_url)
    directory = p.path.rsplit("/", 1)[0] + "/"
    return urlunparse((p.scheme, p.netloc, directory, "", "", ""))


# -------------------- HTML utils --------------------


def bs4_parse(markup: Union[str, bytes]) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "lxml")
    except Exception:
        return BeautifulSoup(markup, "html.parser")


def effective_base_url(soup: BeautifulSoup, fallback: str) -> str:
    tag = soup.find("base", href=True)
    if tag and tag.get("href"):
        try:
            return urljoin(fallback, tag["href"])
        except ValueError:
            logging.debug("ignoring invalid <base href>: %s", tag["href"])
    return fallback


def serialize_html(soup: BeautifulSoup) -> bytes:
    return soup.encode("utf-8", formatter="html")


def parse_srcset(v: str) -> List[str]:
    urls: List[str] = []
    if not v:
        return urls
    for cand in SRCSET_SPLIT_RE.split(v.strip()):
        if not cand:
            continue
        parts = WS_RE.split(cand.strip())
        if parts:
            urls.append(parts[0])
    return urls


def iter_css_urls(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(token, reference)`` for every ``url(...)`` in stylesheet text."""
    for m in CSS_URL_RE.finditer(text):
        ref = m.group(2).strip()
        if can_fetch_url(ref):
            yield m.group(0), ref


# -------------------- Reference index --------------------


def _attribute_values(value: str) -> List[str]:
    return [value]


def _stylesheet_values(value: str) -> List[str]:
    return [ref for _, ref in iter_css_urls(value)]


_LINK_RELS = {"stylesheet", "icon", "apple-touch-icon", "manifest"}


def _is_asset_link(tag: Tag) -> bool:
    rels = {r.lower() for r in (tag.get("rel") or [])}
    if "preload" in rels:
        return (tag.get("as") or "").lower() in {"style", "image", "font"}
    return bool(_LINK_RELS & rels)


@dataclass(frozen=True)
class NodeParser:
    tag: str
    attribute: Optional[str]  # None reads the element text
    parse: Callable[[str], List[str]] = _attribute_values
    accept: Optional[Callable[[Tag], bool]] = None


NODE_PARSERS: Dict[ReferenceCategory, Tuple[NodeParser, ...]] = {
    ReferenceCategory.BODY: (NodeParser("body", "background"),),
    ReferenceCategory.IMAGE: (
        NodeParser("img", "src"),
        NodeParser("img", "data-src"),
        NodeParser("img", "srcset", parse_srcset),
        NodeParser("source", "srcset", parse_srcset),
    ),
    ReferenceCategory.LINK: (NodeParser("link", "href", accept=_is_asset_link),),
    ReferenceCategory.SCRIPT: (NodeParser("script", "src"),),
    ReferenceCategory.STYLE: (NodeParser("style", None, _stylesheet_values),),
}


class HtmlIndex:
    """Absolute URLs referenced by one parsed page, grouped by category."""

    def __init__(self, soup: BeautifulSoup, page_url: str):
        self.soup = soup
        self.base = effective_base_url(soup, page_url)

    @classmethod
    def from_html(cls, markup: Union[str, bytes], page_url: str) -> "HtmlIndex":
        return cls(bs4_parse(markup), page_url)

    def urls(self, category: ReferenceCategory) -> List[str]:
        parsers = NODE_PARSERS.get(category)
        if parsers is None:
            raise ExtractionError(f"unknown reference category: {category!r}")

        found: List[str] = []
        seen: Set[str] = set()
        errors: List[str] = []
        names = list(dict.fromkeys(p.tag for p in parsers))
        for node in self.soup.find_all(names):
            for parser in parsers:
                if node.name != parser.tag:
                    continue
                if parser.accept is not None and not parser.accept(node):
                    continue
                value = node.get(parser.attribute) if parser.attribute else node.string
                if not value:
                    continue
                for ref in parser.parse(str(value)):
                    if not can_fetch_url(ref):
                        continue
                    try:
                        absu = urljoin(self.base, ref.strip())
                    except ValueError as e:
                        errors.append(f"{ref}: {e}")
                        continue
                    if absu not in seen:
                        seen.add(absu)
                        found.append(absu)
        if errors:
            raise ExtractionError(
                f"invalid {category.value} references: {'; '.join(errors)}", found
            )
        return found


# -------------------- Eligibility --------------------


class UrlPolicy:
    def __init__(self, start_url: str, settings: Settings):
        self.host = urlparse(start_url).netloc
        self.settings = settings
        self.include = re.compile(settings.include) if settings.include else None
        self.exclude = re.compile(settings.exclude) if settings.exclude else None
        self.processed: Set[str] = set()

    def should_download(self, url: str, depth: int, is_asset: bool) -> bool:
        p = urlparse(url)
        if p.scheme not in ("http", "https"):
            return False

        key = (p.path or "/") if p.netloc == self.host else url
        if key in self.processed:
            return False
        self.processed.add(key)

        if p.netloc != self.host:
            if not is_asset:
                logging.debug("skipping external host page: %s", url)
                return False
            if self.settings.same_origin_only:
                logging.debug("skipping external asset: %s", url)
                return False
        if not is_asset and self.settings.max_depth and depth >= self.settings.max_depth:
            logging.debug("skipping too deep level page: %s", url)
            return False
        if self.include and not self.include.search(url):
            return False
        if self.exclude and self.exclude.search(url):
            return False
        return True


# -------------------- Output layout --------------------


class PathDeriver:
    def __init__(self, start_url: str, output_root: Path):
        self.host = urlparse(start_url).netloc
        self.root = output_root / (sanitize_filename(self.host) or "host")

    def file_path(self, url: str, is_page: bool = False) -> Path:
        p = urlparse(url)
        segs = [sanitize_filename(unquote(s)) for s in p.path.split("/") if s]
        if not segs or p.path.endswith("/"):
            segs.append("index.html" if is_page else "index")
        elif is_page and not os.path.splitext(segs[-1])[1]:
            segs.append("index.html")
        base = self.root
        if p.netloc != self.host:
            base = base / ("_" + sanitize_filename(p.netloc))
        return base.joinpath(*segs)

    def local_reference(self, from_url: str, to_url: str, from_page: bool = False) -> str:
        src_dir = self.file_path(from_url, from_page).parent
        rel = os.path.relpath(self.file_path(to_url), src_dir)
        return quote(Path(rel).as_posix())


# -------------------- Transport --------------------


def build_session(settings: Optional[Settings] = None) -> requests.Session:
    s = requests.Session()
    s.headers.update(DEFAULT_HEADERS)
    if settings is not None:
        apply_auth_to_session(s, settings)
    return s


def apply_auth_to_session(session: requests.Session, settings: Settings) -> None:
    for h in settings.extra_headers:
        if ":" not in h:
            logging.warning("invalid header (no colon): %s", h)
            continue
        k, v = h.split(":", 1)
        session.headers[k.strip()] = v.strip()
    if settings.auth_bearer:
        session.headers["Authorization"] = f"Bearer {settings.auth_bearer}"
    if settings.auth_basic:
        if ":" not in settings.auth_basic:
            logging.error("--auth-basic requires user:pass")
        else:
            u, p = settings.auth_basic.split(":", 1)
            session.auth = (u, p)
    if settings.cookies_file:
        try:
            jar = MozillaCookieJar()
            jar.load(settings.cookies_file, ignore_discard=True, ignore_expires=True)
            session.cookies.update(jar)
            logging.info("loaded cookies: %s", settings.cookies_file)
        except OSError as e:
            logging.error("failed to load cookies: %s", e)


@dataclass
class FetchResult:
    content: bytes
    content_type: Optional[str]
    final_url: str
    status: int


class HttpTransport:
    def __init__(
        self,
        session: requests.Session,
        timeout: float = 15.0,
        max_bytes: int = 50_000_000,
    ):
        self.session = session
        self.timeout = timeout
        self.max_bytes = max_bytes

    def fetch(self, cancel: threading.Event, url: str) -> FetchResult:
        if cancel.is_set():
            raise DownloadCancelled(url)
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as resp:
                if resp.status_code >= 400:
                    raise DownloadFailed(url, f"HTTP {resp.status_code}")
                cl = resp.headers.get("Content-Length")
                if cl and cl.isdigit() and int(cl) > self.max_bytes:
                    raise DownloadFailed(url, f"too large ({cl} bytes)")
                buf = bytearray()
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if cancel.is_set():
                        raise DownloadCancelled(url)
                    if not chunk:
                        continue
                    buf.extend(chunk)
                    if len(buf) > self.max_bytes:
                        logging.warning("truncated %s at %d bytes", url, self.max_bytes)
                        del buf[self.max_bytes :]
                        break
                if not buf:
                    raise DownloadFailed(url, "empty response")
                return FetchResult(
                    content=bytes(buf),
                    content_type=resp.headers.get("Content-Type"),
                    final_url=resp.url or url,
                    status=resp.status_code,
                )
        except requests.RequestException as e:
            raise DownloadFailed(url, str(e)) from e


# -------------------- Transformers --------------------


class StylesheetRewriter:
    """Queues the images a stylesheet references and relinks them locally.

    Every ``url(...)`` token is replaced wherever the exact same token text
    occurs in the stylesheet, comments and strings included.
    """

    def __init__(self, enqueue: Callable[[str], None], paths: PathDeriver):
        self.enqueue = enqueue
        self.paths = paths

    def __call__(self, css_url: str, data: bytes) -> bytes:
        text = data.decode("utf-8", errors="surrogateescape")
        css_dir = stylesheet_directory(css_url)

        urls: Dict[str, str] = {}
        for token, ref in iter_css_urls(text):
            try:
                absu, frag = urldefrag(urljoin(css_dir, ref))
            except ValueError as e:
                logging.error("parsing css url failed: %s in %s: %s", ref, css_url, e)
                continue
            self.enqueue(absu)
            local = self.paths.local_reference(css_url, absu)
            urls[token] = f"{local}#{frag}" if frag else local

        if not urls:
            return data

        tokens = sorted(urls, key=len, reverse=True)
        token_re = re.compile("|".join(re.escape(t) for t in tokens))
        text = token_re.sub(lambda m: f"url({urls[m.group(0)]})", text)
        for ori, local in urls.items():
            logging.debug("css element relinked: %s -> url(%s)", ori, local)
        return text.encode("utf-8", errors="surrogateescape")


class ImageRecoder:
    def __init__(self, quality: int = 0):
        self.quality = quality

    def __call__(self, url: str, data: bytes) -> bytes:
        if not self.quality:
            return data
        kind = filetype.guess(data)
        if kind is None or kind.mime not in ("image/jpeg", "image/png"):
            return data
        recoded = self._encode_jpeg(url, data)
        if recoded is None or len(recoded) >= len(data):
            return data
        logging.debug(
            "recoded %s image %s: %d -> %d bytes",
            kind.extension,
            url,
            len(data),
            len(recoded),
        )
        return recoded

    def _encode_jpeg(self, url: str, data: bytes) -> Optional[bytes]:
        out = BytesIO()
        try:
            with Image.open(BytesIO(data)) as img:
                if img.mode in ("RGBA", "LA") or "transparency" in img.info:
                    return None
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                img.save(out, format="JPEG", quality=self.quality, optimize=True)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logging.debug("image recode failed for %s: %s", url, e)
            return None
        return out.getvalue()


# -------------------- Asset pass --------------------


class AssetDownloader:
    """Downloads the assets one page references, each at most once.

    The image queue starts with the page's body and img references and
    grows with every image a downloaded stylesheet points at; it is
    drained after all categories were processed.
    """

    def __init__(
        self,
        *,
        policy: UrlPolicy,
        paths: PathDeriver,
        transport: HttpTransport,
        image_transformer: Optional[Transformer] = None,
        write: Callable[[Path, bytes], None] = write_file,
        exists: Callable[[Path], bool] = file_exists,
    ):
        self.policy = policy
        self.paths = paths
        self.transport = transport
        self.write = write
        self.exists = exists
        self.queue = AssetQueue()
        self.transformers: Dict[Transform, Optional[Transformer]] = {
            Transform.NONE: None,
            Transform.STYLESHEET: StylesheetRewriter(self.queue.append, paths),
            Transform.IMAGE_RECODE: image_transformer,
        }

    def _references(self, index: HtmlIndex, category: ReferenceCategory) -> List[str]:
        try:
            return list(index.urls(category))
        except ExtractionError as e:
            logging.error("getting %s node urls failed: %s", category.value, e)
            return e.urls

    def process_page_references(
        self, index: HtmlIndex, cancel: threading.Event
    ) -> PassReport:
        report = PassReport()
        try:
            for category in QUEUED_CATEGORIES:
                self.queue.extend(self._references(index, category))

            for category in CATEGORIES_WITH_REFERENCES:
                transform = (
                    Transform.STYLESHEET
                    if category is ReferenceCategory.LINK
                    else Transform.NONE
                )
                for url in self._references(index, category):
                    report.add(self.download_asset(url, transform, cancel))

            for url in self.queue.drain():
                report.add(self.download_asset(url, Transform.IMAGE_RECODE, cancel))
        finally:
            self.queue.clear()

        logging.info(
            "assets: %d fetched, %d skipped, %d failed",
            report.fetched,
            report.skipped,
            report.failed,
        )
        return report

    def download_asset(
        self, url: str, transform: Transform, cancel: threading.Event
    ) -> AssetResult:
        url = urldefrag(url).url

        if not self.policy.should_download(url, 0, True):
            return AssetResult(url, AssetStatus.SKIPPED)

        file_path = self.paths.file_path(url, False)
        if self.exists(file_path):
            return AssetResult(url, AssetStatus.SKIPPED, file_path)

        logging.info("downloading asset: %s", url)
        try:
            fetched = self.transport.fetch(cancel, url)
        except DownloadFailed as e:
            logging.warning("downloading asset failed: %s", e)
            return AssetResult(url, AssetStatus.FAILED, file_path, FailureKind.TRANSPORT)

        data = fetched.content
        transformer = self.transformers[transform]
        if transformer is not None:
            try:
                data = transformer(url, data)
            except Exception as e:
                logging.error("transforming asset failed: %s: %s", url, e)
                data = fetched.content

        try:
            self.write(file_path, data)
        except (OSError, ValueError) as e:
            logging.error("writing asset file failed: %s -> %s: %s", url, file_path, e)
            return AssetResult(url, AssetStatus.FETCHED, file_path, FailureKind.STORAGE)
        return AssetResult(url, AssetStatus.FETCHED, file_path)


# -------------------- Rewriters --------------------

HTML_REFERENCE_ATTRS = {
    "img": ["src", "data-src"],
    "script": ["src"],
    "link": ["href"],
    "body": ["background"],
}


def rewrite_html_references(
    soup: BeautifulSoup,
    page_url: str,
    paths: PathDeriver,
    *,
    base_url: Optional[str] = None,
    exists: Callable[[Path], bool] = file_exists,
) -> None:
    base = effective_base_url(soup, base_url or page_url)

    def to_local(value: str) -> Optional[str]:
        if not can_fetch_url(value):
            return None
        try:
            absu, frag = urldefrag(urljoin(base, value.strip()))
        except ValueError:
            return None
        if not exists(paths.file_path(absu)):
            return None
        rel = paths.local_reference(page_url, absu, from_page=True)
        return f"{rel}#{frag}" if frag else rel

    for tag_name, attrs in HTML_REFERENCE_ATTRS.items():
        for tag in soup.find_all(tag_name):
            for a in attrs:
                val = tag.get(a)
                if not val:
                    continue
                local = to_local(val)
                if local is not None:
                    tag[a] = local
                    for rm in ("integrity", "crossorigin"):
                        if rm in tag.attrs:
                            del tag.attrs[rm]

    for tag in soup.select("img[srcset], source[srcset]"):
        parts = []
        for candidate in SRCSET_SPLIT_RE.split(tag.get("srcset", "").strip()):
            comp = WS_RE.split(candidate.strip()) if candidate else []
            if not comp or not comp[0]:
                continue
            local = to_local(comp[0])
            parts.append(" ".join([local or comp[0]] + comp[1:]))
        tag["srcset"] = ", ".join(parts)

    for style in soup.find_all("style"):
        if not style.string:
            continue

        def repl_url(m: re.Match) -> str:
            local = to_local(m.group(2))
            return m.group(0) if local is None else f"url({local})"

        new_text = CSS_URL_RE.sub(repl_url, style.string)
        if new_text != style.string:
            style.string.replace_with(new_text)


# -------------------- Main: single page --------------------


def mirror_page(
    url: str,
    output_folder: Union[str, Path],
    settings: Settings,
    cancel: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
) -> Optional[PassReport]:
    cancel = cancel or threading.Event()
    out_root = Path(output_folder).resolve()
    policy = UrlPolicy(url, settings)
    paths = PathDeriver(url, out_root)
    transport = HttpTransport(
        session or build_session(settings), settings.timeout, settings.max_bytes
    )
    downloader = AssetDownloader(
        policy=policy,
        paths=paths,
        transport=transport,
        image_transformer=ImageRecoder(settings.image_quality),
    )

    if not policy.should_download(url, 0, False):
        logging.info("skipping page: %s", url)
        return None

    logging.info("GET %s", url)
    try:
        page = transport.fetch(cancel, url)
    except DownloadFailed as e:
        logging.error("downloading page failed: %s", e)
        return None

    soup = bs4_parse(page.content)
    index = HtmlIndex(soup, page.final_url)
    report = downloader.process_page_references(index, cancel)

    html_path = paths.file_path(url, is_page=True)
    rewrite_html_references(soup, url, paths, base_url=page.final_url)
    try:
        write_file(html_path, serialize_html(soup))
    except OSError as e:
        logging.error("writing page file failed: %s -> %s: %s", url, html_path, e)
        return report
    logging.info("saved page: %s -> %s", url, html_path)
    return report


# -------------------- Config loader --------------------


def load_config_file(path: str) -> Dict[str, Union[str, int, float, bool, List[str]]]:
    p = Path(path)
    suf = p.suffix.lower()
    if suf in {".toml", ".tml"}:
        with open(p, "rb") as f:
            return tomllib.load(f) or {}
    elif suf in {".yaml", ".yml"}:
        import yaml

        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise RuntimeError("Top-level YAML must be a mapping")
            return data
    else:
        raise RuntimeError("Unsupported config format. Use .toml or .yaml")


# -------------------- CLI --------------------


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Mirror one page and the assets it references.",
        add_help=True,
    )
    p.add_argument("--config", type=str, help="path to config.toml|.yaml", default=None)

    p.add_argument("url", help="http(s) URL")
    p.add_argument("output_folder", help="output directory")
    p.add_argument("--external", action="store_true", help="include third-party assets")
    p.add_argument(
        "--include", type=str, default=None, help="only fetch URLs matching regex"
    )
    p.add_argument("--exclude", type=str, default=None, help="skip URLs matching regex")
    p.add_argument(
        "--max-depth", type=int, default=0, help="max page depth (0 = unlimited)"
    )
    p.add_argument(
        "--timeout", type=float, default=15.0, help="request timeout seconds"
    )
    p.add_argument(
        "--max-bytes", type=int, default=50_000_000, help="max bytes per file"
    )
    p.add_argument(
        "--image-quality",
        type=int,
        default=0,
        help="recode JPEG/PNG images at this JPEG quality 1..95 (0 = keep)",
    )
    p.add_argument("--verbose", action="store_true", help="debug logging")

    # auth / session
    p.add_argument(
        "--cookies",
        type=str,
        default=None,
        help="cookies.txt (Netscape/Mozilla format)",
    )
    p.add_argument(
        "--header",
        action="append",
        default=[],
        help="extra request header 'Name: value'",
    )
    p.add_argument("--auth-basic", type=str, default=None, help="basic auth user:pass")
    p.add_argument("--auth-bearer", type=str, default=None, help="bearer token")

    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_arg_parser()
    preliminary, _ = parser.parse_known_args(argv)
    if preliminary.config:
        cfg = load_config_file(preliminary.config)
        if isinstance(cfg, dict):
            flat = dict(cfg)
            for g in ("general", "policy", "transport", "images", "auth"):
                if isinstance(cfg.get(g), dict):
                    flat.update(cfg[g])
            parser.set_defaults(**flat)
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        timeout=args.timeout,
        max_bytes=max(1024, args.max_bytes),
        same_origin_only=not args.external,
        include=args.include,
        exclude=args.exclude,
        max_depth=max(0, args.max_depth),
        image_quality=max(0, min(95, args.image_quality)),
        cookies_file=args.cookies,
        extra_headers=args.header or [],
        auth_basic=args.auth_basic,
        auth_bearer=args.auth_bearer,
    )


def install_interrupt_handler(cancel: threading.Event) -> None:
    def _handler(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        logging.warning("interrupted, cancelling downloads (press again to abort)")
        cancel.set()

    signal.signal(signal.SIGINT, _handler)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if urlparse(args.url).scheme not in {"http", "https"}:
        print("Invalid URL. Use http:// or https://")
        sys.exit(1)

    settings = settings_from_args(args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    cancel = threading.Event()
    install_interrupt_handler(cancel)

    print("Reminder: only clone content you own or have permission to copy.")
    try:
        report = mirror_page(args.url, args.output_folder, settings, cancel)
    except DownloadCancelled as e:
        logging.warning("%s", e)
        sys.exit(130)
    if report is None:
        sys.exit(1)
    print("Mirroring complete")
    print(
        f"Assets fetched: {report.fetched}, skipped: {report.skipped}, "
        f"failed: {report.failed}"
    )


if __name__ == "__main__":
    main()
