# =========================
# FILE: pizzeria_stock/pizzastock/application/response_templates.py
# =========================
from __future__ import annotations

import random

def _pick(options: list[str]) -> str:
    return random.choice(options)

def greet_reply() -> str:
    return _pick([
        "Olá! 👋 Posso ajudar com estoque, receitas e vendas. Digite /help para ver os comandos.",
        "Oi! 🍕 O que vamos organizar hoje na pizzaria?",
    ])

def thanks_reply() -> str:
    return _pick([
        "Por nada! Precisa de mais alguma coisa?",
        "Disponha 😊 Quer ver o status do estoque? (/stock status)",
    ])

def cancelled_reply() -> str:
    return _pick([
        "❌ Ação cancelada.",
        "Tudo bem, cancelei a ação. Nada foi alterado.",
    ])

def nothing_pending_reply() -> str:
    return "Não há nenhuma ação aguardando confirmação."

HELP_TEXT = """🤖 **Comandos disponíveis:**

**Receitas**
• /create recipe <nome>
• /list recipes
• /delete recipe <nome>
• /edit recipe <id> ingredient <ingrediente> <quantidade|remover>

**Ingredientes**
• /create ingredient <nome>
• /list ingredients
• /stock status
• /alerts stock

**Lixeira**
• /trash show
• /restore <tipo> <id>

**Dados**
• /import
• /export recipes [csv|json]
• /export ingredients [csv|json]

Ou simplesmente me diga o que precisa! 😊"""

FALLBACK_BY_TOPIC = {
    "create": (
        "🆕 Para criar algo novo, você pode:\n\n"
        "• \"/create recipe <nome>\" - Criar receita\n"
        "• \"/create ingredient <nome>\" - Criar ingrediente\n\n"
        "Ou me conte mais sobre o que quer criar!"
    ),
    "trash": (
        "🗑️ Para acessar a lixeira, use:\n\n\"/trash show\"\n\n"
        "Você também pode restaurar itens com:\n\"/restore <tipo> <id>\""
    ),
    "import": (
        "📁 Para importar dados, use:\n\n\"/import\"\n\n"
        "Você poderá enviar arquivos CSV ou JSON."
    ),
    "stock": (
        "📦 Para ver o status do estoque:\n\n\"/stock status\"\n\n"
        "Para ver alertas:\n\"/alerts stock\""
    ),
    "help": HELP_TEXT,
    "general": (
        "🤖 Entendi! Posso ajudar você com:\n\n"
        "• Criar receitas e ingredientes\n• Gerenciar estoque\n"
        "• Importar/exportar dados\n• Acessar a lixeira\n\n"
        "Digite \"/help\" para ver todos os comandos ou me diga o que precisa!"
    ),
}
