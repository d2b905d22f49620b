"""
Configuration subsystem.

- **config.py**: Static configuration from environment variables (.env support)
- **manager.py**: Dynamic dot-notation configuration over YAML defaults

Static values (connection URLs, pool sizes, log level) require a restart to
change. Dynamic values (cache TTLs, streak window, pagination caps) are read
through `ConfigManager.get()` at call time.

The logging subsystem imports `Config` during bootstrap, so this package only
re-exports the static layer; import `ConfigManager` from its own module.

Usage
-----
```python
from src.core.config import Config
from src.core.config.manager import ConfigManager

db_url = Config.DATABASE_URL
ttl = ConfigManager.get("progress.cache.ttl_seconds", 300)
```
"""

from src.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
