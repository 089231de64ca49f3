import tkinter as tk
from tkinter import ttk, messagebox

from gui.vote_tab import VoteTab
from gui.rankings_tab import RankingsTab

class MainGUI:
    def __init__(self, app_controller, root):
        self.app = app_controller
        self.root = root
        self.root.title("AlbumVote")
        self.root.geometry("1000x760")

        self.setup_theme()
        self.setup_status_bar()
        self.setup_notebook()
        self.setup_tabs()

    def setup_theme(self):
        self.dark_bg = "#2E2E2E"
        self.light_fg = "#FFFFFF"
        self.button_bg = "#444444"
        self.button_fg = "#FFFFFF"
        self.header_bg = "#3C3F41"
        self.treeview_bg = "#333333"
        self.entry_bg = "#444444"
        self.select_bg = "#6A4C93"
        self.select_fg = "#FFFFFF"

        self.root.configure(bg=self.dark_bg)

        self.style = ttk.Style()
        self.style.theme_use('clam')
        self.style.configure('.', background=self.dark_bg, foreground=self.light_fg)
        self.style.configure("Treeview", background=self.treeview_bg, foreground=self.light_fg,
                             fieldbackground=self.treeview_bg, rowheight=28)
        self.style.configure("Treeview.Heading", background=self.header_bg, foreground=self.light_fg)
        self.style.map('Treeview', background=[('selected', self.select_bg)], foreground=[('selected', self.select_fg)])
        self.style.configure('TLabel', background=self.dark_bg, foreground=self.light_fg)
        self.style.configure('Title.TLabel', font=('Helvetica', 16, 'bold'))
        self.style.configure('TFrame', background=self.dark_bg)
        self.style.configure('TButton', background=self.button_bg, foreground=self.button_fg)
        self.style.map('TButton', background=[('active', self.select_bg)], foreground=[('active', self.select_fg)])
        self.style.configure('TEntry', fieldbackground=self.entry_bg, foreground=self.light_fg, insertcolor=self.light_fg)
        self.style.configure('TNotebook', background=self.dark_bg)
        self.style.configure('TNotebook.Tab', background=self.button_bg, foreground=self.light_fg)
        self.style.map('TNotebook.Tab', background=[('selected', self.select_bg)], foreground=[('selected', self.select_fg)])

    def setup_notebook(self):
        self.notebook = ttk.Notebook(self.root)
        self.notebook.pack(fill=tk.BOTH, expand=True)

    def setup_tabs(self):
        self.vote_tab = VoteTab(self.app, self.notebook)
        self.personal_tab = RankingsTab(self.app, self.notebook, scope='personal')
        self.global_tab = RankingsTab(self.app, self.notebook, scope='global')
        self.vote_tab.setup_vote_tab()
        self.personal_tab.setup_rankings_tab()
        self.global_tab.setup_rankings_tab()

        self.tabs = {
            'vote-tab': self.vote_tab.frame,
            'my-rankings-tab': self.personal_tab.frame,
            'global-rankings-tab': self.global_tab.frame,
        }
        self.notebook.bind("<<NotebookTabChanged>>", self.on_tab_changed)

    def setup_status_bar(self):
        self.status_var = tk.StringVar(value="Ready")
        ttk.Label(self.root, textvariable=self.status_var, anchor='w', padding=(10, 4))\
            .pack(fill=tk.X, side=tk.BOTTOM)

    def select_tab(self, tab_id):
        frame = self.tabs.get(tab_id) or self.tabs['vote-tab']
        self.notebook.select(frame)

    def on_tab_changed(self, event):
        selected_frame = event.widget.nametowidget(event.widget.select())
        for tab_id, frame in self.tabs.items():
            if frame is selected_frame:
                self.app.persistence.save_active_tab(tab_id)
        if selected_frame is self.personal_tab.frame:
            self.personal_tab.update_results()
        elif selected_frame is self.global_tab.frame:
            self.app.controller.refresh_global()
            self.global_tab.update_results()

    def update_status(self, message):
        try:
            self.status_var.set(message)
        except tk.TclError:
            print(f"[Status Update] {message}")

    def show_error(self, title, message):
        messagebox.showerror(title, message)
