"""A small notes application used by the tests."""

from pathlib import Path

from fastapi import Depends
from sqlalchemy.engine import Engine

from wheels import Application, Database, Model, RecordNotFound, WebController, get_database


NOTES_TABLE = """
CREATE TABLE notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT,
    body TEXT,
    views INTEGER
)
"""

VIEWS = {
    "layout.html": "<main>{{ content }}</main>",
    "page.html": "<h1>{{ title }}</h1>{{ snippet }}",
    "note.html": "<h1>{{ note.title }}</h1><p>{{ note.body }}</p>",
    "broken.html": "<p>{{ missing.attribute }}</p>",
}


class Note(Model):
    TABLE = "notes"
    COLUMNS = ("id", "title", "body", "views")


class NoteController(WebController):
    pass


class BareController(WebController):
    layout = None


def write_views(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name, source in VIEWS.items():
        (directory / name).write_text(source)
    return directory


def build_app(root_dir: Path, engine: Engine) -> Application:
    app = Application(root_dir, title="Notes")

    def database():
        with Database(engine) as db:
            yield db

    app.dependency_overrides[get_database] = database

    @app.get("/page")
    async def page(controller: NoteController = Depends(NoteController)):
        return controller.view("page", {"title": "<b>Hi</b>"}, {"snippet": "<em>raw</em>"})

    @app.get("/bare")
    async def bare(controller: BareController = Depends(BareController)):
        return controller.view("page", {"title": "Plain"})

    @app.get("/broken")
    async def broken(controller: NoteController = Depends(NoteController)):
        return controller.view("broken")

    @app.get("/notes/{note_id}")
    async def show(note_id: int, controller: NoteController = Depends(NoteController), db: Database = Depends(get_database)):
        note = Note(db)
        try:
            note.load(note_id)
        except RecordNotFound:
            controller.abort(404, "<p>No such note</p>")
        if controller.request_is_json():
            return controller.json(note)
        return controller.view("note", {"note": note})

    @app.post("/notes")
    async def create(controller: NoteController = Depends(NoteController), db: Database = Depends(get_database)):
        note = Note(db, title=await controller.input("title"), body=await controller.input("body"))
        note.save()
        controller.redirect(f"/notes/{note.id}")

    @app.post("/echo")
    async def echo(controller: NoteController = Depends(NoteController)):
        return controller.json({"inputs": await controller.inputs()})

    @app.get("/header")
    async def header(controller: NoteController = Depends(NoteController)):
        return controller.json(controller.get_header_line("X-Custom", "missing"))

    @app.get("/abort/{code}")
    async def abort(code: int, controller: NoteController = Depends(NoteController)):
        controller.abort(code, "<p>gone</p>")

    @app.get("/missing")
    async def missing(controller: NoteController = Depends(NoteController)):
        controller.abort(404)

    @app.get("/html")
    async def html(controller: NoteController = Depends(NoteController)):
        return controller.html("<p>created</p>", 201)

    return app
