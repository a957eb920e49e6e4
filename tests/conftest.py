import os
import tempfile

# precisa rodar antes de qualquer import de core.configs
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PUBLIC_DIR"] = tempfile.mkdtemp(prefix="dindao-public-")
os.environ["WAHA_WEBHOOK_HASHES"] = "hash-teste:sessao-teste,outro-hash:outra-sessao"
os.environ["SESSION_SECRET"] = "segredo-de-sessao-dos-testes"
os.environ["JWT_SECRET"] = "segredo-jwt-dos-testes"
os.environ["SYSTEM_USER_ADMIN"] = "admin@teste.com"
os.environ["SYSTEM_USER_PASS"] = "admin123"
