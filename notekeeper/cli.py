"""Interactive terminal front end: login/sign-up and a notes dashboard."""

import argparse
import asyncio
import cmd
import functools
import getpass
import logging
import shlex

from notekeeper.client import NotesClient
from notekeeper.errors import NotekeeperError, user_message
from notekeeper.services.session import AuthResult, SessionEvent, SessionStore, register_via_api

logger = logging.getLogger(__name__)


def _render_result(result: AuthResult) -> str:
    if result.success:
        return result.message or "Done."
    return user_message(result.code, result.message)


class NotesShell(cmd.Cmd):
    """Command loop driven by a SessionStore and a NotesClient."""

    intro = "Notekeeper. Type help or ? to list commands."
    prompt = "(notes) "

    def __init__(self, store: SessionStore, client: NotesClient) -> None:
        super().__init__()
        self.store = store
        self.client = client
        self.loop = asyncio.new_event_loop()
        self._unsubscribe = store.subscribe(self._on_session_change)

    def _on_session_change(self, event: SessionEvent, session) -> None:
        if event is SessionEvent.SIGNED_IN and session is not None:
            self.prompt = f"(notes {session.user.email}) "
        elif event is SessionEvent.SIGNED_OUT:
            self.prompt = "(notes) "

    def run(self, coroutine):
        return self.loop.run_until_complete(coroutine)

    def _call_api(self, coroutine):
        try:
            return self.run(coroutine)
        except NotekeeperError as e:
            self.stdout.write(f"Error: {user_message(e.kind, e.message)}\n")
            return None

    def do_signup(self, arg: str) -> None:
        """signup NAME EMAIL: create an account (password is prompted)."""
        parts = shlex.split(arg)
        if len(parts) < 2:
            self.stdout.write("Usage: signup NAME EMAIL\n")
            return
        *name_parts, email = parts
        password = getpass.getpass("Password: ")
        result = self.run(self.store.sign_up(" ".join(name_parts), email, password))
        self.stdout.write(_render_result(result) + "\n")

    def do_login(self, arg: str) -> None:
        """login EMAIL: sign in (password is prompted)."""
        email = arg.strip()
        if not email:
            self.stdout.write("Usage: login EMAIL\n")
            return
        password = getpass.getpass("Password: ")
        result = self.run(self.store.sign_in(email, password))
        self.stdout.write(_render_result(result) + "\n")

    def do_logout(self, arg: str) -> None:
        """logout: end the current session."""
        self.run(self.store.sign_out())
        self.stdout.write("Logged out.\n")

    def do_whoami(self, arg: str) -> None:
        """whoami: show the signed-in user."""
        user = self.run(self.store.get_current_user())
        if user is None:
            self.stdout.write("Not logged in.\n")
        else:
            self.stdout.write(f"{user.name or ''} <{user.email}>\n")

    def do_list(self, arg: str) -> None:
        """list [TERM]: show notes, optionally filtered by TERM."""
        notes = self._call_api(self.client.list_notes(arg.strip() or None))
        if notes is None:
            return
        if not notes:
            self.stdout.write(
                "No notes found matching your search.\n" if arg.strip()
                else "No notes yet. Create your first note!\n"
            )
            return
        for note in notes:
            self.stdout.write(f"{note['id']}  {note['title']}  ({note['updated_at']})\n")

    def do_show(self, arg: str) -> None:
        """show ID: print one note."""
        note = self._call_api(self.client.get_note(arg.strip()))
        if note is not None:
            self.stdout.write(f"{note['title']}\n\n{note['content']}\n")

    def do_add(self, arg: str) -> None:
        """add TITLE: create a note; content is read on the next line."""
        content = input("Content: ")
        note = self._call_api(self.client.create_note(arg.strip(), content))
        if note is not None:
            self.stdout.write(f"Created {note['id']}\n")

    def do_edit(self, arg: str) -> None:
        """edit ID: replace a note's title and content."""
        note_id = arg.strip()
        title = input("Title: ")
        content = input("Content: ")
        note = self._call_api(self.client.update_note(note_id, title, content))
        if note is not None:
            self.stdout.write(f"Updated {note['id']}\n")

    def do_delete(self, arg: str) -> None:
        """delete ID: delete a note after confirmation."""
        note_id = arg.strip()
        if input(f"Delete {note_id}? [y/N] ").lower() != "y":
            return
        message = self._call_api(self.client.delete_note(note_id))
        if message:
            self.stdout.write(message + "\n")

    def do_quit(self, arg: str) -> bool:
        """quit: leave the shell."""
        return True

    do_EOF = do_quit

    def postloop(self) -> None:
        self._unsubscribe()
        self.run(self.store.close())
        self.loop.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Notekeeper terminal client")
    parser.add_argument("--api-url", help="Base URL of the notes API")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    store = SessionStore(
        fallback_registrar=functools.partial(register_via_api, base_url=args.api_url)
    )
    shell = NotesShell(store, NotesClient(store, base_url=args.api_url))
    shell.run(store.initialize())
    shell.cmdloop()


if __name__ == "__main__":
    main()
