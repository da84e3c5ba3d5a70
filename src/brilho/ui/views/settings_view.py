from __future__ import annotations

import tkinter as tk
from tkinter import ttk

from brilho import __version__
from brilho.domain.errors import AuthorizationError

ROLE_LABELS = {"admin": "Administrador", "seller": "Vendedor", "viewer": "Visualizador"}


class SettingsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Ajustes")

        self.email_var = tk.StringVar(value="")
        self.role_var = tk.StringVar(value="")
        self.new_role = tk.StringVar(value="seller")
        self._build()

    def _build(self):
        tab = self.frame

        account = ttk.LabelFrame(tab, text="Conta")
        account.pack(fill="x", padx=10, pady=10)
        ttk.Label(account, text="Email").grid(row=0, column=0, sticky="w", padx=10, pady=4)
        ttk.Label(account, textvariable=self.email_var).grid(row=0, column=1, sticky="w", padx=10, pady=4)
        ttk.Label(account, text="Perfil").grid(row=1, column=0, sticky="w", padx=10, pady=4)
        ttk.Label(account, textvariable=self.role_var).grid(row=1, column=1, sticky="w", padx=10, pady=4)
        ttk.Button(account, text="Sair", command=self.app.sign_out)\
            .grid(row=2, column=0, sticky="w", padx=10, pady=(4, 10))

        pw = ttk.LabelFrame(tab, text="Alterar senha")
        pw.pack(fill="x", padx=10, pady=10)
        self.current_pw = self._entry(pw, "Senha atual", 0)
        self.new_pw = self._entry(pw, "Nova senha", 1)
        self.confirm_pw = self._entry(pw, "Confirmar nova senha", 2)
        ttk.Button(pw, text="Alterar senha", command=self.change_password)\
            .grid(row=3, column=0, sticky="w", padx=10, pady=(4, 10))

        self.users_box = ttk.LabelFrame(tab, text="Usuários (somente administrador)")
        self.users_box.pack(fill="both", expand=True, padx=10, pady=10)

        form = ttk.Frame(self.users_box)
        form.pack(fill="x", padx=10, pady=8)
        ttk.Label(form, text="Email").pack(side="left")
        self.user_email = ttk.Entry(form, width=28)
        self.user_email.pack(side="left", padx=6)
        ttk.Label(form, text="Senha").pack(side="left")
        self.user_pw = ttk.Entry(form, width=14, show="•")
        self.user_pw.pack(side="left", padx=6)
        ttk.Combobox(form, textvariable=self.new_role, values=["seller", "viewer"], state="readonly", width=10)\
            .pack(side="left", padx=6)
        ttk.Button(form, text="Criar usuário", command=self.create_user).pack(side="left", padx=6)

        self.users_tree = ttk.Treeview(self.users_box, columns=("id", "email", "role"), show="headings", height=6)
        for c, title, w in (("id", "ID", 50), ("email", "Email", 300), ("role", "Perfil", 140)):
            self.users_tree.heading(c, text=title)
            self.users_tree.column(c, width=w, anchor="w")
        self.users_tree.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        about = ttk.Frame(tab)
        about.pack(fill="x", padx=10, pady=10)
        ttk.Label(about, text="💎 Clube do Brilho", style="Title.TLabel").pack()
        ttk.Label(about, text=f"Versão {__version__}").pack()

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=10, pady=4)
        e = ttk.Entry(parent, width=24, show="•")
        e.grid(row=row, column=1, sticky="w", padx=10, pady=4)
        return e

    def refresh(self):
        user = self.app.current_user
        if user is None:
            return
        self.email_var.set(user.email)
        self.role_var.set(ROLE_LABELS.get(user.role, user.role))

        for item in self.users_tree.get_children():
            self.users_tree.delete(item)
        if self.app.can_action("manage_users"):
            for u in self.app.auth.list_users():
                self.users_tree.insert("", "end", values=(u.id, u.email, ROLE_LABELS.get(u.role, u.role)))

    def change_password(self):
        try:
            self.app.auth.change_password(
                self.app.current_user,
                self.current_pw.get(),
                self.new_pw.get(),
                self.confirm_pw.get(),
            )
        except Exception as e:
            self.app.handle_error("Alterar senha", e, "Falha ao alterar senha.")
            return
        for e in (self.current_pw, self.new_pw, self.confirm_pw):
            e.delete(0, tk.END)
        self.app.toast("Senha alterada.", kind="success")

    def create_user(self):
        try:
            if not self.app.can_action("manage_users"):
                raise AuthorizationError("Somente administradores podem criar usuários.")
            self.app.auth.create_user(
                self.app.current_user, self.user_email.get(), self.user_pw.get(), self.new_role.get()
            )
        except Exception as e:
            self.app.handle_error("Usuários", e, "Falha ao criar usuário.")
            return
        self.user_email.delete(0, tk.END)
        self.user_pw.delete(0, tk.END)
        self.app.toast("Usuário criado.", kind="success")
        self.refresh()
