#!/usr/bin/env python3
# Example usage of embedded_json_db: a small book catalog.
# Creates (or reopens) ./book_catalog.db.json, inserts linked records, queries and saves.

from datetime import date

from rich.console import Console

from embedded_json_db import Database, Query, console_printer

SCHEMA = {
    "authors": {
        "name": {"type": "string", "required": True},
        "born": {"type": "date"},
    },
    "books": {
        "title": {"type": "string", "required": True},
        "year": {"type": "number"},
        "author": {"type": "id authors"},
        "tags": {"type": "array string"},
    },
}

console = Console()

def main() -> None:
    # Opens the file if it exists (its schema wins), otherwise creates an empty store
    with Database("book_catalog", SCHEMA, on_progress=console_printer()) as db:
        author = db.insert("authors", {"name": "Ursula K. Le Guin", "born": date(1929, 10, 21)})
        for title, year, tags in [
            ("A Wizard of Earthsea", 1968, ["fantasy"]),
            ("The Left Hand of Darkness", 1969, ["sf"]),
            ("The Dispossessed", 1974, ["sf", "utopia"]),
        ]:
            db.insert("books", {"title": title, "year": year, "author": author["_id"], "tags": tags})

        # AND: science fiction published before 1970
        found = db.find_all([
            Query("books", "tags", "contains", "sf"),
            Query("books", "year", "lt", 1970),
        ])
        for rid, book in (found or {}).items():
            console.print(f"{rid}: {book['title']} ({book['year']})", markup=False)

        # Update through a working copy; commit revalidates the whole entry
        with db.update_by_id("books", next(iter(found))) as book:
            book["tags"] = book["tags"] + ["classic"]

        db.save_sync()
        console.print(f"saved to {db.path()}", markup=False)

if __name__ == "__main__":
    main()
