"""Allow ``python -m hydra_ldap``."""

from hydra_ldap.cli.app import main

if __name__ == "__main__":
    main()
