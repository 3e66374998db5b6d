"""Human-readable strings for transactional messages, per language."""

from typing import Dict

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "greeting": "Hi",
        # Purchase receipt
        "receipt.subject": "Credits purchase receipt",
        "receipt.preheader": "Your purchase is confirmed and credits are now available.",
        "receipt.header": "Receipt",
        "receipt.header_highlight": "Credits",
        "receipt.reason": "Purchase Receipt",
        "receipt.credits_purchased": "Credits Purchased",
        "receipt.amount_paid": "Amount Paid",
        "receipt.provider": "Provider",
        "receipt.new_balance": "New Balance",
        "receipt.transaction_id": "Transaction ID",
        "receipt.paid_at": "Paid At",
        # Low credits
        "low_credits.subject": "Your credits are running low",
        "low_credits.preheader": "Top up now to keep practicing without interruptions.",
        "low_credits.header": "Credits",
        "low_credits.header_highlight": "running low",
        "low_credits.reason": "Credits warning",
        "low_credits.remaining_one": "You have {count} credit remaining.",
        "low_credits.remaining_many": "You have {count} credits remaining.",
        "low_credits.body": "Top up your credits to keep practicing interviews with {product}.",
        "low_credits.cta": "Buy credits",
        # Password reset
        "reset.subject": "Reset your {product} password",
        "reset.preheader": "Password reset link (expires in 1 hour)",
        "reset.header": "Reset",
        "reset.header_highlight": "password",
        "reset.reason": "Account security",
        "reset.body": "We received a request to reset your {product} account password.",
        "reset.cta": "Reset password",
        "reset.expiry": "This link expires in 1 hour. If you didn't request this, you can safely ignore this email.",
        # Email verification
        "verify.subject": "Verify your {product} email",
        "verify.preheader": "Use the code to activate your account.",
        "verify.header": "Verify",
        "verify.header_highlight": "email",
        "verify.reason": "Email verification",
        "verify.body": "Welcome to {product}! Use this code to verify your email:",
        "verify.cta": "Open verification page",
        # Interview reminder
        "reminder.subject": "Your interview practice is waiting",
        "reminder.preheader": "Keep your momentum going with another practice session.",
        "reminder.header": "Practice",
        "reminder.header_highlight": "reminder",
        "reminder.reason": "Interview reminder",
        "reminder.scheduled": "Your {role} interview is scheduled for {when}.",
        "reminder.pending": "Your {role} interview is ready whenever you are.",
        "reminder.engagement": "It's been a while since your last practice session. A short interview keeps your skills sharp.",
        "reminder.cta": "Start practicing",
        "reminder.default_role": "practice",
    },
    "pt": {
        "greeting": "Olá",
        "receipt.subject": "Recibo de compra de créditos",
        "receipt.preheader": "Sua compra foi confirmada e os créditos já estão disponíveis.",
        "receipt.header": "Recibo",
        "receipt.header_highlight": "Créditos",
        "receipt.reason": "Recibo de Compra",
        "receipt.credits_purchased": "Créditos comprados",
        "receipt.amount_paid": "Valor pago",
        "receipt.provider": "Provedor",
        "receipt.new_balance": "Novo saldo",
        "receipt.transaction_id": "ID da transação",
        "receipt.paid_at": "Data",
        "low_credits.subject": "Seus créditos estão acabando",
        "low_credits.preheader": "Recarregue agora para continuar praticando sem interrupções.",
        "low_credits.header": "Créditos",
        "low_credits.header_highlight": "acabando",
        "low_credits.reason": "Aviso de créditos",
        "low_credits.remaining_one": "Você tem {count} crédito restante.",
        "low_credits.remaining_many": "Você tem {count} créditos restantes.",
        "low_credits.body": "Recarregue seus créditos para continuar praticando entrevistas com o {product}.",
        "low_credits.cta": "Comprar créditos",
        "reset.subject": "Redefinir sua senha {product}",
        "reset.preheader": "Link de redefinição de senha (expira em 1 hora)",
        "reset.header": "Redefinir",
        "reset.header_highlight": "senha",
        "reset.reason": "Segurança da conta",
        "reset.body": "Recebemos uma solicitação para redefinir a senha da sua conta {product}.",
        "reset.cta": "Redefinir senha",
        "reset.expiry": "Este link expira em 1 hora. Se você não solicitou esta alteração, ignore este email.",
        "verify.subject": "Verifique seu email {product}",
        "verify.preheader": "Use o código para ativar sua conta.",
        "verify.header": "Verifique",
        "verify.header_highlight": "email",
        "verify.reason": "Verificação de email",
        "verify.body": "Bem-vindo ao {product}! Use este código para verificar seu email:",
        "verify.cta": "Abrir página de verificação",
        "reminder.subject": "Sua prática de entrevista está esperando",
        "reminder.preheader": "Mantenha o ritmo com mais uma sessão de prática.",
        "reminder.header": "Lembrete",
        "reminder.header_highlight": "de prática",
        "reminder.reason": "Lembrete de entrevista",
        "reminder.scheduled": "Sua entrevista de {role} está agendada para {when}.",
        "reminder.pending": "Sua entrevista de {role} está pronta quando você estiver.",
        "reminder.engagement": "Faz algum tempo desde a sua última prática. Uma entrevista curta mantém suas habilidades afiadas.",
        "reminder.cta": "Começar a praticar",
        "reminder.default_role": "prática",
    },
}


def message(language: str, key: str, **params) -> str:
    """Look up a string for a language (falling back to English) and fill params."""
    catalog = MESSAGES.get(language, MESSAGES["en"])
    text = catalog.get(key, MESSAGES["en"][key])
    return text.format(**params) if params else text
