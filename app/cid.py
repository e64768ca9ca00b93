"""IPFS content identifier shape checks."""

import re

# base58btc alphabet: no 0, O, I or l
_CIDV0 = re.compile(r"Qm[1-9A-HJ-NP-Za-km-z]{44}")
# Looser than real base32 multibase; the IPFS node rejects anything truly malformed.
_CIDV1 = re.compile(r"bafy[a-z0-9]{54,}")


def is_valid_cid(value: object) -> bool:
    """Return True if ``value`` looks like a CIDv0 or CIDv1 string."""
    if not isinstance(value, str):
        return False
    return bool(_CIDV0.fullmatch(value) or _CIDV1.fullmatch(value))
