import os
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from export.exporters import (
    create_rankings_figure,
    export_chart_and_insights,
    export_rankings_csv,
    export_votes_csv,
    ranking_statistics,
)

class RankingsTab:
    """One tab per scope: 'personal' (the subject's own votes) or 'global' (everyone)."""
    def __init__(self, app, notebook, scope):
        self.app = app
        self.root = app.root
        self.notebook = notebook
        self.scope = scope

    def setup_rankings_tab(self):
        self.frame = ttk.Frame(self.notebook)
        title = 'My Rankings' if self.scope == 'personal' else 'Global Rankings'
        self.notebook.add(self.frame, text=title)

        main = ttk.Frame(self.frame)
        main.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        self.summary_var = tk.StringVar()
        ttk.Label(main, textvariable=self.summary_var).pack(fill=tk.X, pady=(0, 10))

        content = ttk.Frame(main)
        content.pack(fill=tk.BOTH, expand=True)
        self.setup_results_treeview(content)
        self.hint = ttk.Label(content, text="Start voting to build your personal rankings!",
                              anchor='center')
        if self.scope == 'personal':
            self.setup_share_controls(main)
        self.setup_export_controls(main)

    def setup_results_treeview(self, parent):
        self.tree_frame = ttk.Frame(parent)
        self.tree_frame.pack(fill=tk.BOTH, expand=True)

        self.tree = ttk.Treeview(self.tree_frame, columns=('Rank', 'Album', 'Year', 'Rating'),
                                 show='headings')
        for col, width in [('Rank', 60), ('Album', 380), ('Year', 80), ('Rating', 100)]:
            self.tree.heading(col, text=col)
            self.tree.column(col, width=width, anchor='w' if col == 'Album' else 'center')

        sb = ttk.Scrollbar(self.tree_frame, orient=tk.VERTICAL, command=self.tree.yview)
        self.tree.configure(yscrollcommand=sb.set)
        sb.pack(side=tk.RIGHT, fill=tk.Y)
        self.tree.pack(fill=tk.BOTH, expand=True)

    def setup_share_controls(self, parent):
        share = ttk.Frame(parent)
        share.pack(fill=tk.X, pady=(10, 0))
        ttk.Label(share, text="Share your rankings:").pack(side=tk.LEFT)
        self.share_var = tk.StringVar(
            value=self.app.controller.share_url(self.app.config['share_base_url'])
        )
        ttk.Entry(share, textvariable=self.share_var, width=60, state='readonly')\
            .pack(side=tk.LEFT, padx=5, fill=tk.X, expand=True)
        self.copy_button = ttk.Button(share, text="Copy Link", command=self.copy_link)
        self.copy_button.pack(side=tk.LEFT)

    def setup_export_controls(self, parent):
        ctrl = ttk.Frame(parent)
        ctrl.pack(fill=tk.X, pady=(10, 0))
        ttk.Button(ctrl, text="Export CSV", command=self.export_csv).pack(side=tk.RIGHT, padx=5)
        ttk.Button(ctrl, text="Export Chart", command=self.export_chart).pack(side=tk.RIGHT, padx=5)
        if self.scope == 'personal':
            ttk.Button(ctrl, text="Export Votes", command=self.export_votes)\
                .pack(side=tk.RIGHT, padx=5)

    def rankings(self):
        c = self.app.controller
        return c.personal_rankings() if self.scope == 'personal' else c.global_rankings()

    def update_results(self):
        c = self.app.controller
        if self.scope == 'personal':
            who = "Someone else's" if c.identity.is_viewing_other else "Your"
            self.summary_var.set(f"{who} rankings")
            if not c.has_personal_votes():
                self.tree_frame.pack_forget()
                self.hint.pack(fill=tk.BOTH, expand=True, pady=40)
                return
            self.hint.pack_forget()
            self.tree_frame.pack(fill=tk.BOTH, expand=True)
        else:
            self.summary_var.set(
                f"Total votes: {c.total_votes}    Unique voters: {c.unique_voters}"
            )

        self.tree.delete(*self.tree.get_children())
        for idx, (album, rating) in enumerate(self.rankings(), start=1):
            self.tree.insert('', 'end', values=(f"#{idx}", album.name, album.year or '', rating))

    def copy_link(self):
        self.root.clipboard_clear()
        self.root.clipboard_append(f"Check out my album rankings! {self.share_var.get()}")
        self.copy_button.config(text="Copied!")
        self.root.after(2000, lambda: self.copy_button.config(text="Copy Link"))

    def export_csv(self):
        path = filedialog.asksaveasfilename(
            title="Export rankings", defaultextension=".csv",
            initialfile=f"{self.scope}_rankings.csv",
            filetypes=[("CSV files", "*.csv")]
        )
        if not path:
            return
        try:
            export_rankings_csv(self.rankings(), path)
            self.app.update_status(f"Exported rankings to {path}")
        except OSError as e:
            messagebox.showerror("Export Error", str(e))

    def export_chart(self):
        path = filedialog.asksaveasfilename(
            title="Export chart", defaultextension=".png",
            initialfile=f"{self.scope}_rankings.png",
            filetypes=[("PNG images", "*.png")]
        )
        if not path:
            return
        base = os.path.splitext(path)[0]
        title = 'My Album Rankings' if self.scope == 'personal' else 'Global Album Rankings'
        total = self.app.controller.total_votes if self.scope == 'global' else None
        rankings = self.rankings()
        try:
            export_chart_and_insights(create_rankings_figure(rankings, title),
                                      ranking_statistics(rankings, total), base)
            self.app.update_status(f"Exported chart to {base}.png")
        except RuntimeError as e:
            messagebox.showerror("Export Error", str(e))

    def export_votes(self):
        path = filedialog.asksaveasfilename(
            title="Export vote history", defaultextension=".csv",
            initialfile="vote_history.csv",
            filetypes=[("CSV files", "*.csv")]
        )
        if not path:
            return
        c = self.app.controller
        try:
            df = export_votes_csv(c.vote_history(), c.catalog, path)
            self.app.update_status(f"Exported {len(df)} votes to {path}")
        except OSError as e:
            messagebox.showerror("Export Error", str(e))
