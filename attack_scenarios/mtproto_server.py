# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/mtproto_server.py

Synthetic server side of the MTProto auth-key exchange.

Used by the attack runners and the test-suite: it decrypts req_DH_params
with the matching RSA private key, answers with RFC 3526 group-14 DH
parameters and confirms the key with dh_gen_ok. Every step can be bent
through the knobs below to play an attacker.
"""

from __future__ import annotations

import hmac

from crypto.aes_ige import ige_decrypt, ige_encrypt
from crypto.dh import RFC3526_PRIME_2048
from crypto.kdf import NNH_OK, new_nonce_hash, sha1, sha256, tmp_aes_key_iv
from crypto.rng import SeededRandomSource
from keys.rsa_keys import RsaPublicKey
from protocol.messages import (
    ClientDHInnerData,
    DhGenAnswer,
    PQInnerData,
    ReqDHParams,
    ReqPqMulti,
    ResPQ,
    ServerDHInnerData,
    ServerDHParamsOk,
    SetClientDHParams,
)

# Example pq from the MTProto auth_key walkthrough: 1229739323 * 1402015859
EXAMPLE_PQ = 0x17ED48941A08F981
EXAMPLE_P = 1229739323
EXAMPLE_Q = 1402015859

SERVER_TIME = 1_700_000_000


class SyntheticServer:
    """
    Server side of the exchange, enough to complete a handshake.

    Knobs for attack scenarios:
      pq, fingerprints, g, dh_prime, g_a (raw bytes override),
      gen_marker (1 ok / 2 retry / 3 fail), flip_hash_bit,
      inner_nonce (nonce written inside the encrypted answer)
    """

    def __init__(self, private_key, rng=None) -> None:
        nums = private_key.private_numbers()
        self.n = nums.public_numbers.n
        self.e = nums.public_numbers.e
        self.d = nums.d
        self.public = RsaPublicKey(n=self.n, e=self.e)
        self.rng = rng if rng is not None else SeededRandomSource(4242)

        self.pq = EXAMPLE_PQ
        self.fingerprints = [self.public.fingerprint]
        self.g = 2
        self.dh_prime = RFC3526_PRIME_2048
        self.g_a = None
        self.gen_marker = NNH_OK
        self.flip_hash_bit = None
        self.inner_nonce = None
        self.server_time = SERVER_TIME

        self.nonce = None
        self.server_nonce = None
        self.new_nonce = None
        self.inner = None
        self.a = None
        self.auth_key = None

    # --- step 1
    def res_pq(self, blob: bytes) -> bytes:
        req = ReqPqMulti.parse(blob)
        self.nonce = req.nonce
        self.server_nonce = self.rng.token_bytes(16)
        pq_bytes = self.pq.to_bytes((self.pq.bit_length() + 7) // 8, "big")
        return ResPQ(self.nonce, self.server_nonce, pq_bytes, list(self.fingerprints)).to_bytes()

    # --- step 2
    def decrypt_inner(self, req: ReqDHParams) -> PQInnerData:
        m = pow(int.from_bytes(req.encrypted_data, "big"), self.d, self.n).to_bytes(256, "big")
        key_xor, aes_encrypted = m[:32], m[32:]
        temp_key = bytes(a ^ b for a, b in zip(key_xor, sha256(aes_encrypted)))
        data_with_hash = ige_decrypt(aes_encrypted, temp_key, b"\x00" * 32)
        padded = data_with_hash[:192][::-1]
        assert data_with_hash[192:] == sha256(temp_key + padded)
        inner, _ = PQInnerData.parse_prefix(padded)
        return inner

    def server_dh_params(self, blob: bytes) -> bytes:
        req = ReqDHParams.parse(blob)
        assert req.fingerprint == self.public.fingerprint
        self.inner = self.decrypt_inner(req)
        self.new_nonce = self.inner.new_nonce

        self.a = int.from_bytes(self.rng.token_bytes(256), "big") % (self.dh_prime - 3) + 2
        ga = self.g_a
        if ga is None:
            v = pow(self.g, self.a, self.dh_prime)
            ga = v.to_bytes((v.bit_length() + 7) // 8, "big")

        inner = ServerDHInnerData(
            nonce=self.nonce if self.inner_nonce is None else self.inner_nonce,
            server_nonce=self.server_nonce,
            g=self.g,
            dh_prime=self.dh_prime.to_bytes((self.dh_prime.bit_length() + 7) // 8, "big"),
            g_a=ga,
            server_time=self.server_time,
        ).to_bytes()
        plain = sha1(inner) + inner
        plain += self.rng.token_bytes((-len(plain)) % 16)
        key, iv = tmp_aes_key_iv(self.new_nonce, self.server_nonce)
        return ServerDHParamsOk(self.nonce, self.server_nonce, ige_encrypt(plain, key, iv)).to_bytes()

    # --- step 3
    def dh_gen(self, blob: bytes) -> bytes:
        req = SetClientDHParams.parse(blob)
        key, iv = tmp_aes_key_iv(self.new_nonce, self.server_nonce)
        plain = ige_decrypt(req.encrypted_data, key, iv)
        client_inner, used = ClientDHInnerData.parse_prefix(plain[20:])
        assert hmac.compare_digest(sha1(plain[20:20 + used]), plain[:20])

        gb = int.from_bytes(client_inner.g_b, "big")
        self.auth_key = pow(gb, self.a, self.dh_prime).to_bytes(256, "big")

        h = bytearray(new_nonce_hash(self.new_nonce, self.auth_key, self.gen_marker))
        if self.flip_hash_bit is not None:
            h[self.flip_hash_bit // 8] ^= 1 << (self.flip_hash_bit % 8)
        return DhGenAnswer(self.gen_marker, self.nonce, self.server_nonce, bytes(h)).to_bytes()

    def salt(self) -> int:
        a = int.from_bytes(self.new_nonce[:8], "little")
        b = int.from_bytes(self.server_nonce[:8], "little")
        return a ^ b




def run_exchange(hs, server, steps: int = 4) -> list:
    """
    Drive hs against server for up to `steps` client outputs
    (start + one per server reply). Stops at the first failure.
    """
    results = [hs.start()]
    handlers = [server.res_pq, server.server_dh_params, server.dh_gen]
    for handler in handlers[: steps - 1]:
        r = results[-1]
        if not r.ok:
            break
        results.append(hs.on_message(handler(r.value.data)))
    return results
