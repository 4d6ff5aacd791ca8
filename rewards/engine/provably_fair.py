"""
Provably Fair Random Number Generation.

표준 암호학적 보안 난수 생성(CSPRNG)을 사용한
검증 가능한 공정성 시스템.

핵심 원리:
─────────────────────────────────────────────────────────────────

1. 서버 시드 (Server Seed):
   - secrets.token_hex(32)로 256비트 무작위 값 생성
   - 게임 전 해시만 공개 (SHA-256)
   - 게임 종료 후 원본 공개

2. 클라이언트 시드 (Client Seed):
   - 플레이어가 제공하거나 자동 생성
   - 서버가 조작할 수 없음을 보장

3. 추첨 (Draw):
   - HMAC-SHA256(key=server_seed, msg="client_seed:nonce")
   - 다이제스트 앞 32비트를 부호 없는 정수로 사용
   - 여러 번 추첨하는 게임은 "client_seed:nonce:cursor"

4. 검증:
   - 게임 종료 후 모든 시드 공개
   - 누구나 동일한 결과 재현 가능

─────────────────────────────────────────────────────────────────
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from rewards.utils.errors import ValidationError


@dataclass(frozen=True)
class SeedCommitment:
    """서버 시드와 사전 공개 해시."""

    server_seed: str  # 게임 종료 전까지 비공개
    server_seed_hash: str  # 게임 시작 전 공개 (사전 약속)


@dataclass(frozen=True)
class FairSeed:
    """Provably fair seed set for one play."""

    server_seed: str
    server_seed_hash: str
    client_seed: str
    nonce: int

    def to_revealed_dict(self) -> dict:
        """게임 종료 후 공개용."""
        return {
            "server_seed": self.server_seed,
            "server_seed_hash": self.server_seed_hash,
            "client_seed": self.client_seed,
            "nonce": self.nonce,
        }


class ProvablyFairRng:
    """
    검증 가능한 공정성 난수 생성기.

    모든 추첨은 시드 쌍과 nonce로 결정되며,
    사후에 누구나 검증할 수 있습니다.
    """

    DRAW_HEX_CHARS = 8  # 32 bits
    DRAW_SPACE = 2**32

    @staticmethod
    def hash_server_seed(server_seed: str) -> str:
        return hashlib.sha256(server_seed.encode()).hexdigest()

    @staticmethod
    def commit() -> SeedCommitment:
        """
        CSPRNG로 서버 시드 생성.

        Returns:
            SeedCommitment(server_seed, server_seed_hash)
        """
        # secrets.token_hex는 os.urandom을 사용 (CSPRNG)
        server_seed = secrets.token_hex(32)  # 256-bit
        return SeedCommitment(
            server_seed=server_seed,
            server_seed_hash=ProvablyFairRng.hash_server_seed(server_seed),
        )

    @staticmethod
    def generate_client_seed() -> str:
        """
        클라이언트 시드 자동 생성.

        Returns:
            client_seed (32 hex chars)
        """
        return secrets.token_hex(16)  # 128-bit

    @staticmethod
    def message(client_seed: str, nonce: int, cursor: int = 0) -> str:
        if cursor:
            return f"{client_seed}:{nonce}:{cursor}"
        return f"{client_seed}:{nonce}"

    @staticmethod
    def draw(server_seed: str, client_seed: str, nonce: int, cursor: int = 0) -> int:
        """
        결정론적 32비트 추첨.

        Args:
            server_seed: 서버 시드 (HMAC 키)
            client_seed: 클라이언트 시드
            nonce: 플레이 번호 (동일 시드로 복제 방지)
            cursor: 같은 플레이 내 추가 추첨 번호 (0 = 첫 추첨)

        Returns:
            0 <= value < 2**32
        """
        if nonce < 0 or cursor < 0:
            raise ValidationError("nonce and cursor must be non-negative")
        digest = hmac.new(
            server_seed.encode(),
            ProvablyFairRng.message(client_seed, nonce, cursor).encode(),
            hashlib.sha256,
        ).hexdigest()
        return int(digest[: ProvablyFairRng.DRAW_HEX_CHARS], 16)

    @staticmethod
    def draws(server_seed: str, client_seed: str, nonce: int, count: int) -> list[int]:
        """Consecutive draws for games that need more than one value."""
        return [
            ProvablyFairRng.draw(server_seed, client_seed, nonce, cursor)
            for cursor in range(count)
        ]

    @staticmethod
    def verify(
        server_seed: str,
        client_seed: str,
        nonce: int,
        claimed_outcome: int,
        modulus: int,
    ) -> bool:
        """
        클라이언트 측 공정성 검증.

        Recomputes ``draw(...) % modulus`` and compares it with the claim.
        """
        if modulus <= 0:
            raise ValidationError(
                "modulus must be positive", details={"modulus": modulus}
            )
        computed = ProvablyFairRng.draw(server_seed, client_seed, nonce) % modulus
        return computed == claimed_outcome

    @staticmethod
    def verify_commitment(server_seed: str, server_seed_hash: str) -> bool:
        """서버 시드 해시 검증."""
        return hmac.compare_digest(
            ProvablyFairRng.hash_server_seed(server_seed),
            server_seed_hash.lower(),
        )
