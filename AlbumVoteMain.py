import argparse
import sys
import tkinter as tk
from tkinter import messagebox

from api.cover_art import CoverArtCache
from api.firestore_client import FirestoreClient
from database.db_manager import open_local_store
from database.persistence import RatingPersistence
from gui import MainGUI
from processing.catalog import DEFAULT_ALBUMS, InvalidCatalog, load_catalog, validate_catalog
from ranking.vote_controller import VoteController
from utilities.config import load_configuration
from utilities.helpers import log_message
from utilities.identity import resolve_identity


class AlbumVote:
    def __init__(self, root, link_user=None, config=None):
        self.root = root
        self.config = config or load_configuration()
        self.gui = None

        # Catalog first: an unusable catalog is the one fatal error
        if self.config['catalog_path']:
            self.catalog = load_catalog(self.config['catalog_path'])
        else:
            self.catalog = validate_catalog(DEFAULT_ALBUMS)

        # Core services
        self.database = open_local_store(
            self.config['db_name'], self.config['db_dir'], logger=self.log
        )
        remote = FirestoreClient(
            self.config['firebase_project_id'],
            self.config['firebase_api_key'],
            timeout=self.config['request_timeout'],
        )
        if not remote.configured:
            self.log("Firestore not configured. Using local storage only.")
        self.persistence = RatingPersistence(
            self.database, remote if remote.configured else None,
            catalog=self.catalog, logger=self.log
        )
        self.covers = CoverArtCache(logger=self.log, timeout=self.config['request_timeout'])

        identity = resolve_identity(link_user, self.persistence)
        self.controller = VoteController(
            self.catalog, self.persistence, identity,
            k_factor=self.config['k_factor'], logger=self.log
        )
        self.controller.load()

        # Then setup the GUI (tabs reference self.controller)
        self.gui = MainGUI(self, root)
        self.gui.vote_tab.show_next_matchup()
        self.gui.select_tab(self.persistence.get_active_tab())
        self.log(f"Ready. Voting as {identity.viewer_id}")

    def log(self, message):
        log_message(message)
        if self.gui is not None:
            self.gui.update_status(message)

    def update_status(self, message):
        self.gui.update_status(message)

    def handle_error(self, context, error):
        msg = f"{context}: {error}"
        self.log(msg)
        self.gui.show_error("Application Error", msg)

    def shutdown(self):
        self.root.destroy()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Vote on albums head-to-head and build rankings.")
    parser.add_argument('--user', help="view the personal rankings shared by this user id")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    root = tk.Tk()
    try:
        app = AlbumVote(root, link_user=args.user)
    except (InvalidCatalog, ValueError, OSError) as e:
        root.withdraw()
        messagebox.showerror("Catalog Error", str(e))
        root.destroy()
        sys.exit(1)
    root.protocol("WM_DELETE_WINDOW", app.shutdown)
    root.mainloop()


if __name__ == '__main__':
    main()
