"""Console UI for the foreground process.

A thin rich front end over the classification workflow. It only presents
and collects choices; every store change goes through
``wiggle.services.classification`` or ``wiggle.services.config_service``.
"""

from collections import deque
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from wiggle.config import settings
from wiggle.core.errors import WiggleError
from wiggle.models import Category
from wiggle.services import classification, config_service
from wiggle.services.classification import CategoryDecision, ItemDecision, ItemView

CATEGORY_CHOICES = {
    "ask": CategoryDecision.ASK_EACH,
    "download": CategoryDecision.DOWNLOAD_ALL,
    "ignore": CategoryDecision.IGNORE,
    "exit": CategoryDecision.EXIT,
}

ITEM_CHOICES = {
    "download": ItemDecision.QUEUE_DOWNLOAD,
    "ignore": ItemDecision.SKIP,
    "later": ItemDecision.DEFER,
    "mark": ItemDecision.MARK_DOWNLOADED,
    "exit": ItemDecision.EXIT,
}

MAIN_CHOICES = ["process", "multi", "search", "categories", "settings", "log", "exit"]


def format_size(size_kib: float | None) -> str:
    """Human readable size from KiB."""
    if size_kib is None:
        return "-"
    size = float(size_kib)
    for unit in ("KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


def parse_selection(text: str, valid_ids: list[int]) -> list[int]:
    """Parse "3, 5 7" or "all" into ids, keeping only ids that were offered."""
    text = text.strip().lower()
    if text == "all":
        return list(valid_ids)
    selected = []
    for token in text.replace(",", " ").split():
        if token.isdigit() and int(token) in valid_ids and int(token) not in selected:
            selected.append(int(token))
    return selected


def tail_log(lines: int = 15) -> list[str]:
    """Last lines of the shared log file, where the worker reports progress."""
    log_file = Path(settings.log_file).expanduser()
    if not log_file.exists():
        return []
    with open(log_file, encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=lines)]


def items_table(items: list[ItemView], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("S/L", justify="right")
    for item in items:
        table.add_row(
            str(item.id),
            item.title or "",
            item.category or "",
            format_size(item.size_kib),
            f"{item.seeders}/{item.leechers}",
        )
    return table


def ask_category(console: Console, category: Category) -> CategoryDecision:
    console.print(f'\nNew category detected: [bold cyan]"{category.name}"[/]')
    choice = Prompt.ask(
        "What do you want to do with this category?",
        choices=list(CATEGORY_CHOICES),
        default="ask",
        console=console,
    )
    return CATEGORY_CHOICES[choice]


def ask_item(console: Console, item: ItemView) -> ItemDecision:
    console.print(items_table([item], "New item"))
    choice = Prompt.ask(
        "What do you want to do with this item?",
        choices=list(ITEM_CHOICES),
        default="later",
        console=console,
    )
    return ITEM_CHOICES[choice]


def process_menu(console: Console) -> None:
    completed = classification.process(
        lambda category: ask_category(console, category),
        lambda item: ask_item(console, item),
    )
    if completed:
        console.print("[green]Nothing left to process.")


def apply_selection(console: Console, item_ids: list[int]) -> None:
    """Ask what to do with a set of selected items and apply it."""
    if not item_ids:
        console.print("[yellow]Nothing selected.")
        return
    choice = Prompt.ask(
        f"Apply to {len(item_ids)} item(s)",
        choices=list(ITEM_CHOICES),
        default="exit",
        console=console,
    )
    updated = classification.apply_bulk_decision(item_ids, ITEM_CHOICES[choice])
    if ITEM_CHOICES[choice] != ItemDecision.EXIT:
        console.print(f"[green]{updated} item(s) updated.")


def multi_process_menu(console: Console) -> None:
    """Like process, but shows a page of items and lets the operator pick several."""
    if not classification.process_categories(lambda category: ask_category(console, category)):
        return

    while True:
        items = classification.list_undecided_items(limit=10)
        if not items:
            console.print("[green]Nothing left to process.")
            return
        console.print(items_table(items, "Undecided items"))
        text = Prompt.ask("Select ids (e.g. '3 5', 'all', blank to exit)", default="", console=console)
        if not text.strip():
            return
        apply_selection(console, parse_selection(text, [item.id for item in items]))


def search_menu(console: Console) -> None:
    last = config_service.get_setting(config_service.LAST_SEARCH) or ""
    pattern = Prompt.ask("Search for (SQL LIKE format)", default=last, console=console)
    only_seeded = Confirm.ask("Only items that have seeders?", default=True, console=console)
    only_undecided = Confirm.ask("Only items not downloaded or decided?", default=True, console=console)

    console.print("Searching... please wait")
    results = classification.search_items(pattern, only_seeded, only_undecided)
    if not results:
        console.print("[yellow]No results found.")
        return

    console.print(items_table(results, f"Search results for {pattern!r}"))
    text = Prompt.ask("Select ids (e.g. '3 5', 'all', blank to cancel)", default="", console=console)
    if text.strip():
        apply_selection(console, parse_selection(text, [item.id for item in results]))


def categories_menu(console: Console) -> None:
    table = Table(title="Categories", show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Status")
    for category in classification.list_categories():
        table.add_row(str(category.id), category.name, category.status.value)
    console.print(table)


def settings_menu(console: Console) -> None:
    while True:
        choice = Prompt.ask("Settings", choices=["url", "download", "exit"], default="exit", console=console)
        if choice == "exit":
            return
        if choice == "url":
            current = config_service.get_site_url() or ""
            url = Prompt.ask("Site URL", default=current, console=console)
            config_service.set_site_url(url)
        else:
            current = config_service.get_setting(config_service.DOWNLOAD_DIR) or ""
            path = Prompt.ask("Download directory", default=current, console=console)
            config_service.set_setting(config_service.DOWNLOAD_DIR, path)
        console.print("[green]Setting saved.")


def log_menu(console: Console) -> None:
    for line in tail_log():
        console.print(line, markup=False, highlight=False)


MENU_ACTIONS = {
    "process": process_menu,
    "multi": multi_process_menu,
    "search": search_menu,
    "categories": categories_menu,
    "settings": settings_menu,
    "log": log_menu,
}


def main_menu(console: Console) -> None:
    """Run the main menu until the operator chooses exit."""
    while True:
        console.print()
        choice = Prompt.ask("Main menu", choices=MAIN_CHOICES, default="process", console=console)
        if choice == "exit":
            return
        try:
            MENU_ACTIONS[choice](console)
        except WiggleError as e:
            # The worker may be mid-write; the operator can simply try again
            console.print(f"[red]{e}")


def ask_site_url(console: Console) -> str:
    return Prompt.ask("Please enter the URL of the site", console=console)


def ask_credentials(console: Console) -> tuple[str, str]:
    console.print("[yellow]Cookies file not found. Will require a login.")
    username = Prompt.ask("Username", console=console)
    password = Prompt.ask("Password", password=True, console=console)
    return username, password


def ask_download_dir(console: Console) -> str:
    console.print("Choose the directory your torrent client picks up torrent files from.")
    return Prompt.ask("Download directory", default=str(Path.home() / "Downloads"), console=console)
