"""Starter .diffchain.toml template."""

DEFAULT_TOML = """\
# diffchain configuration
version = "1.0"

[store]
url = "sqlite:///diffchain.db"   # any SQLAlchemy URL
echo = false

[commit]
hash_length = 40                 # characters kept from the sha256 digest
max_retries = 3                  # retries after a concurrent chain append

[classifier]
# extra_extensions = [".sql", ".sh"]
# extensions_file = "code_extensions.yaml"

[output]
format = "terminal"              # terminal | json

[logging]
level = "WARNING"
"""
