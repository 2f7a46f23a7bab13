import dataclasses
import enum
import logging
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Mapping, NoReturn, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader
from markupsafe import escape

from .core.http import Halt, reason_phrase
from .services.model import Model


logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_UNSET = object()


def _encode_model(model: Model) -> Any:
    return jsonable_encoder(model.attributes(model.COLUMNS))


def _flatten(params) -> Dict[str, Any]:
    """Collapse a multi-dict: repeated keys and ``name[]`` keys become lists.

    ``name[]`` and ``name`` values are merged into one list under ``name``.
    """
    collected: Dict[str, list] = {}
    as_list = set()
    for key in params.keys():
        name = key[:-2] if key.endswith("[]") else key
        if name != key:
            as_list.add(name)
        collected.setdefault(name, []).extend(params.getlist(key))

    return {
        name: values if name in as_list or len(values) > 1 else values[0]
        for name, values in collected.items()
    }


class WebController:
    """Base class for controllers that render views and read request input.

    Use a subclass as a FastAPI dependency so it is built per request::

        @app.get("/about")
        async def about(controller: PageController = Depends(PageController)):
            return controller.view("about", {"title": "About"})
    """

    # Views folder; relative paths are resolved against the application root
    view_path: str = "../views"

    # Layout template wrapping every view, set to None to render views bare
    layout: Optional[str] = "layout.html"

    view_extension: str = ".html"

    def __init__(self, request: Request):
        self.request = request
        self._request_input: Any = _UNSET
        self._request_headers = None
        self._templates: Optional[Environment] = None

    @property
    def templates(self) -> Environment:
        if self._templates is None:
            self._templates = Environment(
                loader=FileSystemLoader(str(self.views_directory())),
                autoescape=False,
            )
        return self._templates

    def views_directory(self) -> Path:
        path = Path(self.view_path)
        if not path.is_absolute():
            root = getattr(self.request.app, "root_dir", None) or Path.cwd()
            path = Path(root) / path
        return path.resolve()

    def view(self, view: str, data: Optional[Mapping[str, Any]] = None, raw: Optional[Mapping[str, Any]] = None) -> HTMLResponse:
        """Render a view template with some data.

        Args:
            view: template name in the views folder without extension, such as 'about'
            data: items that will be escaped and provided to the view
            raw: safe items that will be rendered without escaping
        """
        raw = dict(raw or {})
        output = self.render(f"{view}{self.view_extension}", data or {}, raw)

        if self.layout:
            raw["content"] = output
            output = self.render(self.layout, {}, raw)

        return self.html(output)

    def render(self, file: str, data: Mapping[str, Any], raw: Optional[Mapping[str, Any]] = None) -> str:
        """Render some data into a template and return the markup.

        Nothing is returned when rendering fails; the error is re-raised.
        """
        context = self.safe(dict(data))
        context.update(raw or {})

        try:
            return self.templates.get_template(file).render(context)
        except Exception as e:
            logger.error(f"Failed to render {file} from {self.views_directory()}: {str(e)}")
            raise

    def json(self, output: Any, code: int = 200) -> JSONResponse:
        content = jsonable_encoder(output, custom_encoder={Model: _encode_model})
        return JSONResponse(content=content, status_code=code)

    def html(self, output: str, code: int = 200) -> HTMLResponse:
        return HTMLResponse(content=output, status_code=code)

    def redirect(self, url: str) -> NoReturn:
        """Stop the request and redirect to another route such as '/about'."""
        raise Halt(RedirectResponse(url=url, status_code=302))

    def abort(self, code: int, html: Optional[str] = None) -> NoReturn:
        """Stop the request with a status code.

        JSON requests get the reason phrase as a JSON body, other requests
        get ``html`` (or an empty body).
        """
        message = reason_phrase(code)
        logger.info(f"Aborting {self.request.method} {self.request.url.path} with {code} {message}")

        if self.request_is_json():
            raise Halt(self.json(message, code))

        raise Halt(self.html(html or "", code))

    def request_is_json(self) -> bool:
        return self.get_header_line("Accept") == "application/json"

    def get_header_line(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get the value of a request header such as 'Accept'."""
        if self._request_headers is None:
            self._request_headers = self.all_request_headers()

        return self._request_headers.get(key, default)

    def all_request_headers(self):
        return self.request.headers

    def safe(self, data: Any) -> Any:
        """Escape HTML special characters so data is safe to render.

        Containers and records keep their shape, strings are escaped at any depth.
        """
        if isinstance(data, enum.Enum):
            return data

        if isinstance(data, str):
            return str(escape(data))

        if data is None or isinstance(data, (bool, int, float)):
            return data

        if isinstance(data, Mapping):
            return {key: self.safe(value) for key, value in data.items()}

        if isinstance(data, tuple) and hasattr(data, "_fields"):
            return data._replace(**{name: self.safe(getattr(data, name)) for name in data._fields})

        if isinstance(data, (list, tuple, set, frozenset)):
            return type(data)(self.safe(value) for value in data)

        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            changes = {
                field.name: self.safe(getattr(data, field.name))
                for field in dataclasses.fields(data)
                if field.init
            }
            return dataclasses.replace(data, **changes)

        if isinstance(data, Model):
            return type(data)(data.db, {key: self.safe(value) for key, value in data.members().items()})

        if hasattr(data, "__dict__"):
            return SimpleNamespace(**self._escape_members(data))

        return str(escape(str(data)))

    def _escape_members(self, data: Any) -> Dict[str, Any]:
        return {
            key: self.safe(value)
            for key, value in vars(data).items()
            if not key.startswith("_")
        }

    async def input(self, key: str, default: Any = None) -> Any:
        """Get a query parameter, posted value, cookie or JSON body member."""
        if self._request_input is _UNSET:
            self._request_input = await self.inputs()

        if isinstance(self._request_input, Mapping):
            return self._request_input.get(key, default)
        return default

    async def inputs(self) -> Any:
        """All the request's query parameters, posted values and cookies.

        Falls back to the decoded JSON body for JSON requests, or the raw body.
        """
        body = await self.request.body()

        params = await self.request_parameters()
        if params:
            return params

        if self.request_is_json():
            try:
                return await self.request.json()
            except ValueError as e:
                logger.warning(f"Ignoring malformed JSON body on {self.request.url.path}: {str(e)}")
                return None

        return body.decode("utf-8", errors="replace")

    async def request_parameters(self) -> Dict[str, Any]:
        params = _flatten(self.request.query_params)

        content_type = self.request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await self.request.form()
            params.update(_flatten(form))

        params.update(self.request.cookies)
        return params
