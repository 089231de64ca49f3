# gui/vote_tab.py

import io
import tkinter as tk
from tkinter import ttk
from tkinter.font import Font
from PIL import Image, ImageTk, UnidentifiedImageError

from ranking.session import reaction_message

class VoteTab:
    def __init__(self, app, notebook):
        self.app = app
        self.root = app.root
        self.notebook = notebook
        self._photo_refs = []        # keep PhotoImage refs alive
        self.bold_font = Font(self.root, weight="bold")
        self.busy = False

    def setup_vote_tab(self):
        self.frame = ttk.Frame(self.notebook)
        self.notebook.add(self.frame, text='Vote')

        main = ttk.Frame(self.frame)
        main.pack(fill=tk.BOTH, expand=True, padx=20, pady=20)

        ttk.Label(main, text="Which album do you prefer?", style='Title.TLabel')\
            .pack(pady=(0, 15))
        self.setup_comparison_interface(main)
        self.setup_counters(main)

    def setup_comparison_interface(self, parent):
        self.comparison_frame = ttk.Frame(parent)
        self.comparison_frame.pack(fill=tk.BOTH, expand=True, pady=(0, 20))
        self.comparison_frame.columnconfigure((0, 1), weight=1)
        self.comparison_frame.rowconfigure(0, weight=3)
        self.comparison_frame.rowconfigure(1, weight=1)

        # Left album
        self.album1_btn = ttk.Button(self.comparison_frame,
                                     command=lambda: self.record_choice('L'))
        self.album1_btn.grid(row=0, column=0, sticky='nsew', padx=10, pady=10)
        self.album1_info = self._make_info_text(self.comparison_frame)
        self.album1_info.grid(row=1, column=0, sticky='nsew', padx=10)

        # Right album
        self.album2_btn = ttk.Button(self.comparison_frame,
                                     command=lambda: self.record_choice('R'))
        self.album2_btn.grid(row=0, column=1, sticky='nsew', padx=10, pady=10)
        self.album2_info = self._make_info_text(self.comparison_frame)
        self.album2_info.grid(row=1, column=1, sticky='nsew', padx=10)

    def setup_counters(self, parent):
        counters = ttk.Frame(parent)
        counters.pack(fill=tk.X)
        self.vote_count_var = tk.StringVar()
        self.total_votes_var = tk.StringVar()
        ttk.Label(counters, textvariable=self.vote_count_var).pack(side=tk.LEFT, padx=10)
        ttk.Label(counters, textvariable=self.total_votes_var).pack(side=tk.RIGHT, padx=10)
        self.update_counters()

    def _make_info_text(self, parent):
        txt = tk.Text(parent, wrap='word', height=2, bd=0, relief='flat',
                      bg=self.root.cget('bg'), fg='#eceff4')
        txt.tag_configure('name', font=self.bold_font, justify='center')
        txt.tag_configure('year', foreground='#a3be8c', justify='center')
        txt.config(state='disabled')
        return txt

    def update_counters(self):
        c = self.app.controller
        self.vote_count_var.set(f"Your votes: {c.vote_count}")
        self.total_votes_var.set(f"Total votes: {c.total_votes}")

    def show_next_matchup(self):
        matchup = self.app.controller.next_matchup()
        self._photo_refs.clear()
        for btn, album, info in [
            (self.album1_btn, matchup.left, self.album1_info),
            (self.album2_btn, matchup.right, self.album2_info)
        ]:
            self._set_cover(btn, album)
            info.config(state='normal')
            info.delete('1.0', tk.END)
            info.insert('end', album.name + '\n', 'name')
            if album.year:
                info.insert('end', str(album.year), 'year')
            info.config(state='disabled')
        self.set_voting_enabled(True)

    def _set_cover(self, btn, album):
        data = self.app.covers.fetch(album.image)
        if not data:
            btn.config(image='', text=album.name)
            return
        try:
            img = Image.open(io.BytesIO(data))
            img.thumbnail((320, 320))
            tkimg = ImageTk.PhotoImage(img)
            btn.config(image=tkimg, text='')
            self._photo_refs.append(tkimg)
        except (UnidentifiedImageError, OSError):
            btn.config(image='', text=album.name)

    def set_voting_enabled(self, enabled):
        self.busy = not enabled
        state = '!disabled' if enabled else 'disabled'
        self.album1_btn.state([state])
        self.album2_btn.state([state])

    def record_choice(self, choice):
        c = self.app.controller
        if self.busy or c.current_matchup is None:
            return
        # no further votes until this one is computed, saved and shown
        self.set_voting_enabled(False)
        matchup = c.current_matchup
        winner = matchup.left if choice == 'L' else matchup.right
        try:
            winner, loser, result = c.vote(winner.id)
            self.update_counters()
            self.app.update_status(f"Voted {winner.name} over {loser.name}")
            VoteResultDialog(self, winner, loser, result).show()
        except Exception as e:
            self.app.handle_error("Vote failed", e)
            # the dialog never opened, so nothing else will re-enable voting
            self.show_next_matchup()


class VoteResultDialog:
    def __init__(self, tab, winner, loser, result):
        self.tab = tab
        self.winner = winner
        self.loser = loser
        self.result = result

    def show(self):
        gui = self.tab.app.gui
        self.win = tk.Toplevel(self.tab.root)
        self.win.title("Vote recorded")
        self.win.configure(bg=gui.dark_bg)
        self.win.transient(self.tab.root)
        self.win.protocol("WM_DELETE_WINDOW", self.close)

        ttk.Label(self.win, text=reaction_message(self.result.agrees_with_majority),
                  style='Title.TLabel').pack(padx=20, pady=(20, 10))

        body = ttk.Frame(self.win)
        body.pack(padx=20, pady=10)
        for col, (label, album, pos) in enumerate([
            ("Winner", self.winner, self.result.winner_rank),
            ("Loser", self.loser, self.result.loser_rank),
        ]):
            ttk.Label(body, text=label).grid(row=0, column=col, padx=20)
            ttk.Label(body, text=album.name, font=self.tab.bold_font)\
                .grid(row=1, column=col, padx=20)
            ttk.Label(body, text=f"Global Rank: #{pos}").grid(row=2, column=col, padx=20)

        ttk.Button(self.win, text="Next matchup", command=self.close).pack(pady=(10, 20))
        self.win.grab_set()

    def close(self):
        self.win.grab_release()
        self.win.destroy()
        self.tab.show_next_matchup()
