"""Snippet routes: create, fetch (raw or highlighted), update, delete, user listings."""

import logging
from typing import Annotated, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile

from snipbin.auth.credentials import Credentials, get_credentials
from snipbin.config import get_settings
from snipbin.limiter import limiter
from snipbin.snippets.counter import ReadCounter
from snipbin.snippets.render import render_highlighted, render_listing
from snipbin.snippets.store import SnippetStore

router = APIRouter(tags=["snippets"])
log = logging.getLogger(__name__)

_WRITE_LIMIT = get_settings().write_rate_limit


def get_store(request: Request) -> SnippetStore:
    """FastAPI dependency: the store created at startup."""
    return request.app.state.store


def get_read_counter(request: Request) -> ReadCounter:
    """FastAPI dependency: the read counter created at startup."""
    return request.app.state.read_counter


def snippet_url(request: Request, snippet_id: str) -> str:
    """Public URL of a snippet, https when the request came in over TLS (directly or proxied)."""
    scheme = "http"
    if request.url.scheme == "https" or request.headers.get("x-forwarded-proto") == "https":
        scheme = "https"
    return f"{scheme}://{request.headers.get('host', '')}/{snippet_id}"


def _is_multipart(request: Request) -> bool:
    return request.headers.get("content-type", "").startswith("multipart/form-data")


def _form_text(form: FormData, key: str) -> str:
    """Form field as text; uploads and missing fields give ''."""
    value = form.get(key)
    return value if isinstance(value, str) else ""


async def _read_part(form: FormData, key: str) -> Tuple[Optional[bytes], str]:
    """Content of an uploaded file or text field, and the upload's filename ('' for text)."""
    value = form.get(key)
    if isinstance(value, UploadFile):
        return await value.read(), value.filename or ""
    if isinstance(value, str) and value:
        return value.encode("utf-8"), ""
    return None, ""


def _parse_max_reads(value: str) -> Optional[int]:
    try:
        count = int(value)
    except ValueError:
        return None
    return count if count > 0 else None


async def collect_parts(form: FormData) -> Tuple[Optional[bytes], Optional[int]]:
    """
    Concatenate fields f:1, f:2, ... (stops at the first missing one). Parts after
    the first get a "--- name.ext ---" separator from name:i / ext:i or the upload
    filename. Returns (content or None if there was no part, first positive read:i).
    """
    chunks: List[bytes] = []
    max_reads: Optional[int] = None
    i = 1
    while True:
        if max_reads is None:
            max_reads = _parse_max_reads(_form_text(form, f"read:{i}"))
        data, filename = await _read_part(form, f"f:{i}")
        if data is None:
            break
        name = _form_text(form, f"name:{i}") or filename or f"File {i}"
        ext = _form_text(form, f"ext:{i}")
        if ext and not ext.startswith("."):
            ext = "." + ext
        if i > 1:
            chunks.append(f"\n\n--- {name}{ext} ---\n\n".encode("utf-8"))
        chunks.append(data)
        i += 1
    if i == 1:
        return None, max_reads
    return b"".join(chunks), max_reads


async def _delete(store: SnippetStore, counter: ReadCounter, snippet_id: str, creds: Credentials) -> bool:
    deleted = await run_in_threadpool(store.delete, snippet_id, creds.username, creds.password)
    if deleted:
        counter.forget(snippet_id)
    return deleted


async def _count_read(store: SnippetStore, counter: ReadCounter, snippet_id: str) -> None:
    """Record a successful fetch; delete the snippet once its read limit is reached."""
    if counter.record_read_and_check_expiry(snippet_id):
        if await run_in_threadpool(store.expire, snippet_id):
            log.info("Auto-deleted %s after reaching read limit", snippet_id)


async def _serve_highlighted(
    store: SnippetStore, counter: ReadCounter, snippet_id: str, language: str
) -> HTMLResponse:
    content = await run_in_threadpool(store.get, snippet_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snippet not found")
    log.info("Fetched %s with %s highlighting", snippet_id, language)
    await _count_read(store, counter, snippet_id)
    return HTMLResponse(render_highlighted(content, language))


@router.get("/user/{username:path}")
async def user_listing(
    request: Request,
    username: str,
    store: Annotated[SnippetStore, Depends(get_store)],
) -> HTMLResponse:
    """Snippets owned by username; /user/ lists the last 100 anonymous snippets."""
    username = username.split("/", 1)[0]
    ids = await run_in_threadpool(store.list_ids, username)
    base_url = snippet_url(request, "").rstrip("/")
    return HTMLResponse(render_listing(username, ids, base_url))


@router.get("/{path:path}")
async def get_snippet(
    request: Request,
    path: str,
    store: Annotated[SnippetStore, Depends(get_store)],
    counter: Annotated[ReadCounter, Depends(get_read_counter)],
) -> Response:
    """
    Fetch a snippet. /<id> returns raw text; /<id>+<lang> (lang defaults to
    console) and /<id>/<lang> return a syntax-highlighted page.
    """
    if "+" in path:
        snippet_id, _, language = path.partition("+")
        return await _serve_highlighted(store, counter, snippet_id, language or "console")
    snippet_id, sep, language = path.partition("/")
    if sep:
        return await _serve_highlighted(store, counter, snippet_id, language)
    content = await run_in_threadpool(store.get, snippet_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snippet not found")
    log.info("Fetched %s", snippet_id)
    await _count_read(store, counter, snippet_id)
    return Response(content=content, media_type="text/plain; charset=utf-8")


@router.post("/{path:path}")
@limiter.limit(_WRITE_LIMIT)
async def post_snippet(
    request: Request,
    path: str,
    creds: Annotated[Credentials, Depends(get_credentials)],
    store: Annotated[SnippetStore, Depends(get_store)],
    counter: Annotated[ReadCounter, Depends(get_read_counter)],
) -> Response:
    """
    Create a snippet from the raw body, or from multipart fields f:1..n.
    Multipart also supports rm=<id> (delete), id:1=<id> (update, authenticated
    callers only) and read:i=<n> (delete after n reads).
    """
    if not _is_multipart(request):
        body = await request.body()
        snippet_id = await run_in_threadpool(store.create, body, creds.username, creds.password)
        return _created(request, snippet_id, creds)

    form = await request.form()
    rm_id = _form_text(form, "rm")
    if rm_id:
        if await _delete(store, counter, rm_id, creds):
            log.info("Deleted %s by %s", rm_id, creds.username or "-")
            return PlainTextResponse(snippet_url(request, rm_id))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized or snippet not found")

    content, max_reads = await collect_parts(form)
    if content is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No content")

    target = _form_text(form, "id:1")
    if target and creds.authenticated:
        if await run_in_threadpool(store.update, target, content, creds.username, creds.password):
            if max_reads is not None:
                counter.set_max_reads(target, max_reads)
            log.info("Updated %s by %s", target, creds.username)
            return PlainTextResponse(snippet_url(request, target))

    snippet_id = await run_in_threadpool(store.create, content, creds.username, creds.password)
    if max_reads is not None:
        counter.set_max_reads(snippet_id, max_reads)
        log.info("Set read count %d for %s", max_reads, snippet_id)
    return _created(request, snippet_id, creds)


def _created(request: Request, snippet_id: str, creds: Credentials) -> PlainTextResponse:
    url = snippet_url(request, snippet_id)
    log.info("Created: %s by %s", url, creds.username or "-")
    return PlainTextResponse(url, status_code=status.HTTP_201_CREATED, headers={"Location": url})


@router.put("/{path:path}")
@limiter.limit(_WRITE_LIMIT)
async def put_snippet(
    request: Request,
    path: str,
    creds: Annotated[Credentials, Depends(get_credentials)],
    store: Annotated[SnippetStore, Depends(get_store)],
) -> PlainTextResponse:
    """Replace a snippet's content with the raw body (or multipart field f:1)."""
    if _is_multipart(request):
        content, _ = await _read_part(await request.form(), "f:1")
        if content is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No content")
    else:
        content = await request.body()
    if await run_in_threadpool(store.update, path, content, creds.username, creds.password):
        log.info("Updated %s by %s", path, creds.username or "-")
        return PlainTextResponse(snippet_url(request, path))
    if not await run_in_threadpool(store.exists, path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snippet not found")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")


@router.delete("/{path:path}")
@limiter.limit(_WRITE_LIMIT)
async def delete_snippet(
    request: Request,
    path: str,
    creds: Annotated[Credentials, Depends(get_credentials)],
    store: Annotated[SnippetStore, Depends(get_store)],
    counter: Annotated[ReadCounter, Depends(get_read_counter)],
) -> PlainTextResponse:
    """Delete a snippet by path (or multipart field rm)."""
    snippet_id = path
    if _is_multipart(request):
        snippet_id = _form_text(await request.form(), "rm") or path
    if await _delete(store, counter, snippet_id, creds):
        log.info("Deleted %s by %s", snippet_id, creds.username or "-")
        return PlainTextResponse(snippet_url(request, snippet_id))
    if not await run_in_threadpool(store.exists, snippet_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snippet not found")
    if not creds.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required for deletion",
            headers={"WWW-Authenticate": "Basic"},
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
