"""Interactive CLI application."""
import argparse
import logging
import random
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from trana.cards import create_card, delete_card, get_card, list_cards, update_card
from trana.config import default_db_path
from trana.db import Store
from trana.decks import create_deck, delete_deck, get_deck, list_decks, update_deck
from trana.errors import NotFoundError, TranaError
from trana.exchange import export_deck, import_file
from trana.models import COMFORT_REVIEW_MAX, COMFORT_REVIEW_MIN, COMFORT_UNSET, Deck
from trana.scheduler import next_card, review_card

console = Console()
logger = logging.getLogger(__name__)

COMFORT_CHOICES = [str(c) for c in range(COMFORT_REVIEW_MIN, COMFORT_REVIEW_MAX + 1)]


def show_welcome():
    console.print(Panel(
        "[bold]trana[/bold]\n[dim]Flashcards, least comfortable first[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("decks", "List decks"),
        ("new-deck", "Create a deck"),
        ("rename-deck", "Rename a deck"),
        ("delete-deck", "Delete a deck and its cards"),
        ("cards", "List a deck's cards"),
        ("add", "Add a card"),
        ("edit", "Edit a card"),
        ("delete", "Delete a card"),
        ("practice", "Practice a deck"),
        ("import", "Merge a JSON/YAML card file into a deck"),
        ("export", "Write a deck to a JSON file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_deck(store: Store) -> Deck:
    decks = list_decks(store)
    if not decks:
        raise NotFoundError("no decks yet; create one with 'new-deck'")
    for d in decks:
        console.print(f"  [cyan]{d.id}[/cyan]) {d.name}")
    deck_id = Prompt.ask("Select deck", choices=[str(d.id) for d in decks])
    return get_deck(store, int(deck_id))


def run_practice_session(store: Store, deck: Deck, rng=random) -> int:
    """Show cards until the user quits. Returns the number of reviews recorded."""
    reviewed = 0
    console.print(f"\n[bold]Practicing {deck.name}[/bold] [dim](q to stop)[/dim]\n")
    while True:
        card = next_card(store, deck.id, rng=rng)
        console.print(Panel(card.front, title=f"Card {card.id}", border_style="cyan"))
        if Prompt.ask("[dim]Press Enter to reveal answer[/dim]", default="").strip().lower() == "q":
            break
        console.print(Panel(card.back, border_style="green"))
        answer = Prompt.ask(
            f"Comfort ({COMFORT_REVIEW_MIN}=hard, {COMFORT_REVIEW_MAX}=easy)",
            choices=COMFORT_CHOICES + ["q"],
        )
        if answer == "q":
            break
        review_card(store, card.id, int(answer), rng=rng)
        reviewed += 1
        console.print()
    console.print(f"[green]Reviewed {reviewed} card(s).[/green]")
    return reviewed


def cmd_decks(store: Store):
    table = Table(title="Decks")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    for d in list_decks(store):
        table.add_row(str(d.id), d.name)
    console.print(table)


def cmd_new_deck(store: Store):
    deck = create_deck(store, Prompt.ask("Deck name"))
    console.print(f"[green]Created deck {deck.id}: {deck.name}[/green]")


def cmd_rename_deck(store: Store):
    deck = choose_deck(store)
    deck.name = Prompt.ask("New name", default=deck.name)
    update_deck(store, deck)
    console.print("[green]Renamed.[/green]")


def cmd_delete_deck(store: Store):
    deck = choose_deck(store)
    if Prompt.ask(f"Delete '{deck.name}' and all its cards?", choices=["y", "n"], default="n") == "y":
        delete_deck(store, deck.id)
        console.print("[green]Deleted.[/green]")


def cmd_cards(store: Store):
    deck = choose_deck(store)
    table = Table(title=deck.name)
    table.add_column("ID", justify="right")
    table.add_column("Front", style="cyan")
    table.add_column("Back")
    table.add_column("Comfort", justify="right")
    table.add_column("Last practiced")
    for c in list_cards(store, deck.id):
        table.add_row(
            str(c.id), c.front, c.back,
            f"{c.comfort:.2f}" if c.practiced else "[dim]new[/dim]",
            c.last_practiced.strftime("%Y-%m-%d %H:%M") if c.last_practiced else "",
        )
    console.print(table)


def cmd_add(store: Store):
    deck = choose_deck(store)
    card = create_card(store, deck.id, Prompt.ask("Front"), Prompt.ask("Back"))
    console.print(f"[green]Added card {card.id}.[/green]")


def cmd_edit(store: Store):
    card = get_card(store, IntPrompt.ask("Card id"))
    card.front = Prompt.ask("Front", default=card.front)
    card.back = Prompt.ask("Back", default=card.back)
    if Prompt.ask("Reset progress?", choices=["y", "n"], default="n") == "y":
        card.last_practiced = None
        card.comfort = COMFORT_UNSET
    update_card(store, card)
    console.print("[green]Saved.[/green]")


def cmd_delete(store: Store):
    card_id = IntPrompt.ask("Card id")
    delete_card(store, card_id)
    console.print("[green]Deleted.[/green]")


def cmd_practice(store: Store):
    run_practice_session(store, choose_deck(store))


def cmd_import(store: Store):
    deck = choose_deck(store)
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(store, deck.id, file_path)
    console.print(f"[green]Imported {result.inserted} new, {result.updated} updated → {deck.name}[/green]")


def cmd_export(store: Store):
    deck = choose_deck(store)
    file_path = Prompt.ask("File path", default=f"trana-deck-{deck.id}.json")
    export_deck(store, deck.id, file_path)
    console.print(f"[green]Wrote {file_path}[/green]")


COMMANDS = {
    "decks": cmd_decks,
    "new-deck": cmd_new_deck,
    "rename-deck": cmd_rename_deck,
    "delete-deck": cmd_delete_deck,
    "cards": cmd_cards,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "practice": cmd_practice,
    "import": cmd_import,
    "export": cmd_export,
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="trana", description="Comfort-ordered flashcards.")
    parser.add_argument("-d", "--dir", help="alternative config directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)
    try:
        store = Store.open(default_db_path(args.dir))
    except TranaError as e:
        console.print(f"[red]Cannot start: {e}[/red]")
        logger.debug("startup failed", exc_info=True)
        sys.exit(1)

    with store:
        show_welcome()
        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
            if choice in ("quit", "exit", "q"):
                console.print("[dim]Bye![/dim]")
                break
            command = COMMANDS.get(choice)
            if command is None:
                console.print("[red]Unknown command. Try again.[/red]")
                continue
            try:
                command(store)
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except TranaError as e:
                console.print(f"[red]Error: {e}[/red]")
            except Exception as e:
                logger.debug("command %s failed", choice, exc_info=True)
                console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
