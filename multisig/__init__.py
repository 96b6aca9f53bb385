"""
multisig — threshold-authorization engine (M-of-N owner wallet).

This package exposes only lightweight metadata at import time. The wallet and its
state components should be imported explicitly from their subpackages:

    from multisig.runtime.wallet import MultisigWallet
"""

from .version import __version__, git_describe

__all__ = ["__version__", "git_describe"]
