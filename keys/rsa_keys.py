# MIT License © 2025 Motohiro Suzuki
"""
keys/rsa_keys.py

Server RSA public keys for the auth-key exchange.

Fingerprint (Telegram): SHA1(tl_bytes(n) || tl_bytes(e)), last 8 bytes read
as a signed little-endian int64 (TL `long`), which is the value resPQ lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from crypto.kdf import sha1
from crypto.factor import int_to_be
from protocol.errors import RsaKeyNotFoundError
from protocol.tl import pack_bytes

logger = logging.getLogger(__name__)


def compute_fingerprint(n: int, e: int) -> int:
    h = sha1(pack_bytes(int_to_be(n)) + pack_bytes(int_to_be(e)))
    return int.from_bytes(h[12:20], "little", signed=True)


@dataclass(frozen=True)
class RsaPublicKey:
    n: int
    e: int

    @property
    def fingerprint(self) -> int:
        return compute_fingerprint(self.n, self.e)

    @property
    def bits(self) -> int:
        return self.n.bit_length()

    @staticmethod
    def from_pem(pem: bytes | str) -> "RsaPublicKey":
        """Accepts PKCS#1 ('RSA PUBLIC KEY') or SubjectPublicKeyInfo PEM."""
        data = pem.encode("ascii") if isinstance(pem, str) else bytes(pem)
        key = serialization.load_pem_public_key(data)
        if not isinstance(key, rsa.RSAPublicKey):
            raise ValueError("not an RSA public key")
        nums = key.public_numbers()
        return RsaPublicKey(n=nums.n, e=nums.e)

    @staticmethod
    def from_file(path: str | Path) -> "RsaPublicKey":
        return RsaPublicKey.from_pem(Path(path).read_bytes())

    def __repr__(self) -> str:
        return f"RsaPublicKey(bits={self.bits}, fingerprint={self.fingerprint})"


@dataclass
class RsaKeySet:
    """Fingerprint-indexed key set. Insertion order is kept."""
    keys: Dict[int, RsaPublicKey] = field(default_factory=dict)

    @staticmethod
    def of(keys: Iterable[RsaPublicKey]) -> "RsaKeySet":
        ks = RsaKeySet()
        for k in keys:
            ks.add(k)
        return ks

    def add(self, key: RsaPublicKey) -> None:
        self.keys[key.fingerprint] = key

    def fingerprints(self) -> List[int]:
        return list(self.keys)

    def find(self, fingerprints: Iterable[int]) -> RsaPublicKey:
        """
        First server-offered fingerprint we hold wins.
        No match -> RsaKeyNotFoundError naming the first offered fingerprint
        (0 when the server offered none).
        """
        offered = list(fingerprints)
        for fp in offered:
            k = self.keys.get(fp)
            if k is not None:
                return k
        logger.warning("[rsa_keys] no key for server fingerprints %s", offered)
        raise RsaKeyNotFoundError(offered[0] if offered else 0)

    def __len__(self) -> int:
        return len(self.keys)

    def __contains__(self, fp: object) -> bool:
        return fp in self.keys


TELEGRAM_PRODUCTION_KEYS_PEM = (
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAruw2yP/BCcsJliRoW5eBVBVle9dtjJw+OYED160Wybum9SXtBBLX
riwt4rROd9csv0t0OHCaTmRqBcQ0J8fxhN6/cpR1GWgOZRUAiQxoMnlt0R93LCX/
j1dnVa/gVbCjdSxpbrfY2g2L4frzjJvdl84Kd9ORYjDEAyFnEA7dD556OptgLQQ2
e2iVNq8NZLYTzLp5YpOdO1doK+ttrltggTCy5SrKeLoCPPbOgGsdxJxyz5KKcZnS
Lj16yE5HvJQn0CNpRdENvRUXe6tBP78O39oJ8BTHp9oIjd6XWXAsp2CvK45Ol8wF
XGF710w9lwCGNbmNxNYhtIkdqfsEcwR5JwIDAQAB
-----END RSA PUBLIC KEY-----
""",
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAvfLHfYH2r9R70w8prHblWt/nDkh+XkgpflqQVcnAfSuTtO05lNPs
pQmL8Y2XjVT4t8cT6xAkdgfmmvnvRPOOKPi0OfJXoRVylFzAQG/j83u5K3kRLbae
7fLccVhKZhY46lvsueI1hQdLgNV9n1cQ3TDS2pQOCtovG4eDl9wacrXOJTG2990V
jgnIKNA0UMoP+KF03qzryqIt3oTvZq03DyWdGK+AZjgBLaDKSnC6qD2cFY81UryR
WOab8zKkWAnhw2kFpcqhI0jdV5QaSCExvnsjVaX0Y1N0870931/5Jb9ICe4nweZ9
kSDF/gip3kWLG0o8XQpChDfyvsqB9OLV/wIDAQAB
-----END RSA PUBLIC KEY-----
""",
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAs/ditzm+mPND6xkhzwFIz6J/968CtkcSE/7Z2qAJiXbmZ3UDJPGr
zqTDHkO30R8VeRM/Kz2f4nR05GIFiITl4bEjvpy7xqRDspJcCFIOcyXm8abVDhF+
th6knSU0yLtNKuQVP6voMrnt9MV1X92LGZQLgdHZbPQz0Z5qIpaKhdyA8DEvWWvS
Uwwc+yi1/gGaybwlzZwqXYoPOhwMebzKUk0xW14htcJrRrq+PXXQbRzTMynseCoP
Ioke0dtCodbA3qQxQovE16q9zz4Otv2k4j63cz53J+mhkVWAeWxVGI0lltJmWtEY
K6er8VqqWot3nqmWMXogrgRLggv/NbbooQIDAQAB
-----END RSA PUBLIC KEY-----
""",
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAvmpxVY7ld/8DAjz6F6q05shjg8/4p6047bn6/m8yPy1RBsvIyvuD
uGnP/RzPEhzXQ9UJ5Ynmh2XJZgHoE9xbnfxL5BXHplJhMtADXKM9bWB11PU1Eioc
3+AXBB8QiNFBn2XI5UkO5hPhbb9mJpjA9Uhw8EdfqJP8QetVsI/xrCEbwEXe0xvi
fRLJbY08/Gp66KpQvy7g8w7VB8wlgePexW3pT13Ap6vuC+mQuJPyiHvSxjEKHgqe
Pji9NP3tJUFQjcECqcm0yV7/2d0t/pbCm+ZH1sadZspQCEPPrtbkQBlvHb4OLiIW
PGHKSMeRFvp3IWcmdJqXahxLCUS1Eh6MAQIDAQAB
-----END RSA PUBLIC KEY-----
""",
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAwVACPi9w23mF3tBkdZz+zwrzKOaaQdr01vAbU4E1pvkfj4sqDsm6
lyDONS789sVoD/xCS9Y0hkkC3gtL1tSfTlgCMOOul9lcixlEKzwKENj1Yz/s7daS
an9tqw3bfUV/nqgbhGX81v/+7RFAEd+RwFnK7a+XYl9sluzHRyVVaTTveB2GazTw
Efzk2DWgkBluml8OREmvfraX3bkHZJTKX4EQSjBbbdJ2ZXIsRrYOXfaA+xayEGB+
8hdlLmAjbCVfaigxX0CDqWeR1yFL9kwd9P0NsZRPsmoqVwMbMu7mStFai6aIhc3n
Slv8kg9qv1m6XHVQY3PnEw+QQtqSIXklHwIDAQAB
-----END RSA PUBLIC KEY-----
""",
)

TELEGRAM_TEST_KEYS_PEM = (
    b"""-----BEGIN RSA PUBLIC KEY-----
MIIBCgKCAQEAyMEdY1aR+sCR3ZSJrtztKTKqigvO/vBfqACJLZtS7QMgCGXJ6XIR
yy7mx66W0/sOFa7/1mAZtEoIokDP3ShoqF4fVNb6XeqgQfaUHd8wJpDWHcR2OFwv
plUUI1PLTktZ9uW2WE23b+ixNwJjJGwBDJPQEQFBE+vfmH0JP503wr5INS1poWg/
j25sIWeYPHYeOrFp/eXaqhISP6G+q2IeTaWTXpwZj4LzXq5YOpk4bYEQ6mvRq7D1
aHWfYmlEGepfaYR8Q0YqvvhYtMte3ITnuSJs171+GDqpdKcSwHnd6FudwGO4pcCO
j4WcDuXc2CTHgH8gFTNhp/Y8/SpDOhvn9QIDAQAB
-----END RSA PUBLIC KEY-----
""",
)


def default_key_set(test: bool = False) -> RsaKeySet:
    pems = TELEGRAM_TEST_KEYS_PEM if test else TELEGRAM_PRODUCTION_KEYS_PEM
    return RsaKeySet.of(RsaPublicKey.from_pem(p) for p in pems)


def load_key_set(paths: Iterable[str | Path]) -> RsaKeySet:
    ks = RsaKeySet()
    for p in paths:
        k = RsaPublicKey.from_file(p)
        logger.info("[rsa_keys] loaded %s fingerprint=%d", p, k.fingerprint)
        ks.add(k)
    return ks
