from __future__ import annotations

import tkinter as tk
from tkinter import ttk
import logging

from brilho.domain.errors import AppError

log = logging.getLogger(__name__)


class LoginDialog:
    """Sign-in / sign-up window shown before the main window opens."""

    def __init__(self, parent: tk.Tk, auth_service):
        self.auth = auth_service
        self.user = None
        self.mode = tk.StringVar(value="signin" if auth_service.has_users() else "signup")
        self.error_var = tk.StringVar(value="")

        self.win = tk.Toplevel(parent)
        self.win.title("Clube do Brilho - Entrar")
        self.win.geometry("380x300")
        self.win.resizable(False, False)
        self.win.protocol("WM_DELETE_WINDOW", self.win.destroy)

        self._build()
        self._on_mode_change()
        self.email_e.focus_set()

    def _build(self):
        box = ttk.Frame(self.win)
        box.pack(fill="both", expand=True, padx=20, pady=16)

        ttk.Label(box, text="💎 Clube do Brilho", font=("Segoe UI", 14, "bold")).pack(pady=(0, 4))
        self.subtitle = ttk.Label(box, text="")
        self.subtitle.pack(pady=(0, 10))

        modes = ttk.Frame(box)
        modes.pack(fill="x")
        ttk.Radiobutton(modes, text="Entrar", value="signin", variable=self.mode,
                        command=self._on_mode_change).pack(side="left")
        ttk.Radiobutton(modes, text="Criar conta", value="signup", variable=self.mode,
                        command=self._on_mode_change).pack(side="left", padx=12)

        form = ttk.Frame(box)
        form.pack(fill="x", pady=10)
        ttk.Label(form, text="Email").grid(row=0, column=0, sticky="w", pady=4)
        self.email_e = ttk.Entry(form, width=30)
        self.email_e.grid(row=0, column=1, sticky="ew", pady=4, padx=(8, 0))
        ttk.Label(form, text="Senha").grid(row=1, column=0, sticky="w", pady=4)
        self.password_e = ttk.Entry(form, width=30, show="•")
        self.password_e.grid(row=1, column=1, sticky="ew", pady=4, padx=(8, 0))
        form.columnconfigure(1, weight=1)

        ttk.Label(box, textvariable=self.error_var, foreground="#b91c1c", wraplength=320).pack(fill="x")

        self.submit_btn = ttk.Button(box, text="Entrar", command=self.submit)
        self.submit_btn.pack(fill="x", pady=(8, 0))

        for e in (self.email_e, self.password_e):
            e.bind("<Return>", lambda _e: self.submit())

    def _on_mode_change(self):
        if self.mode.get() == "signup":
            first = not self.auth.has_users()
            self.subtitle.config(text="Crie a primeira conta (administrador)" if first else "Crie sua conta")
            self.submit_btn.config(text="Criar conta")
        else:
            self.subtitle.config(text="Entre na sua conta")
            self.submit_btn.config(text="Entrar")
        self.error_var.set("")

    def submit(self):
        email = self.email_e.get()
        password = self.password_e.get()
        try:
            if self.mode.get() == "signup":
                self.user = self.auth.sign_up(email, password)
            else:
                self.user = self.auth.sign_in(email, password)
        except AppError as e:
            self.error_var.set(str(e))
            self.password_e.delete(0, tk.END)
            return
        self.win.destroy()
