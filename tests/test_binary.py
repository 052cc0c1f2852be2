"""Tests for bore binary resolution and verification."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from bore_tunnel.binary import (
    BinaryResolver,
    locate_binary,
    resolve_target,
    verify_binary,
)
from bore_tunnel.common.exceptions import BinaryNotFoundError, UnsupportedPlatformError
from bore_tunnel.config import SupervisorSettings


class TestResolveTarget:
    """Platform/architecture lookup table"""

    @pytest.mark.parametrize(
        ("system", "machine", "expected"),
        [
            ("linux", "x86_64", "linux-x64"),
            ("Linux", "AMD64", "linux-x64"),
            ("darwin", "x86_64", "darwin-x64"),
            ("darwin", "arm64", "darwin-arm64"),
            ("darwin", "aarch64", "darwin-arm64"),
        ],
    )
    def test_supported_platforms(self, system, machine, expected):
        assert resolve_target(system, machine) == expected

    @pytest.mark.parametrize(
        ("system", "machine"),
        [
            ("linux", "aarch64"),
            ("windows", "amd64"),
            ("linux", "i686"),
            ("freebsd", "x86_64"),
        ],
    )
    def test_unsupported_platforms(self, system, machine):
        with pytest.raises(UnsupportedPlatformError, match="Unsupported platform/arch"):
            resolve_target(system, machine)

    def test_unsupported_platform_is_binary_not_found(self):
        """Callers catching BinaryNotFoundError also see unsupported platforms"""
        with pytest.raises(BinaryNotFoundError):
            resolve_target("windows", "amd64")


class TestBinaryResolver:
    """Bundled binary lookup with PATH fallback"""

    def test_bundled_binary_is_preferred(self, tmp_path):
        binary = tmp_path / "binaries" / "bore-linux-x64" / "bore"
        binary.parent.mkdir(parents=True)
        binary.touch(mode=0o755)
        settings = SupervisorSettings(install_root=tmp_path)

        resolver = BinaryResolver(settings, system="linux", machine="x86_64")

        assert resolver.resolve() == str(binary)

    def test_falls_back_to_bare_name(self, tmp_path):
        settings = SupervisorSettings(install_root=tmp_path)

        resolver = BinaryResolver(settings, system="darwin", machine="arm64")

        assert resolver.resolve() == "bore"

    def test_bundled_path_follows_convention(self, tmp_path):
        settings = SupervisorSettings(install_root=tmp_path, binary_prefix="bore")

        resolver = BinaryResolver(settings, system="darwin", machine="arm64")

        assert resolver.bundled_path("darwin-arm64") == (
            tmp_path / "binaries" / "bore-darwin-arm64" / "bore"
        )

    def test_unsupported_platform_raises(self, tmp_path):
        settings = SupervisorSettings(install_root=tmp_path)

        resolver = BinaryResolver(settings, system="windows", machine="amd64")

        with pytest.raises(UnsupportedPlatformError):
            resolver.resolve()

    def test_explicit_binary_path_skips_lookup(self):
        settings = SupervisorSettings(binary_path="/opt/bore/bin/bore")

        resolver = BinaryResolver(settings, system="windows", machine="amd64")

        assert resolver.resolve() == "/opt/bore/bin/bore"

    def test_defaults_to_host_platform(self):
        with patch("bore_tunnel.binary.get_system_info", return_value=("linux", "x86_64")):
            resolver = BinaryResolver()

        assert resolver.system == "linux"
        assert resolver.machine == "x86_64"


class TestVerifyBinary:
    """`bore --version` self-check"""

    @pytest.mark.asyncio
    async def test_clean_exit_verifies(self):
        process = Mock()
        process.wait = AsyncMock(return_value=0)
        process.returncode = 0

        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = process
            result = await verify_binary("/usr/bin/bore")

        assert result is True
        mock_create.assert_called_once_with(
            "/usr/bin/bore",
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )

    @pytest.mark.asyncio
    async def test_non_zero_exit_fails(self):
        process = Mock()
        process.wait = AsyncMock(return_value=2)
        process.returncode = 2

        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = process
            result = await verify_binary("bore")

        assert result is False

    @pytest.mark.asyncio
    async def test_spawn_error_fails(self):
        with patch(
            "asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            side_effect=FileNotFoundError("bore"),
        ):
            result = await verify_binary("bore")

        assert result is False

    @pytest.mark.asyncio
    async def test_hung_check_is_killed(self, make_process):
        process = make_process()

        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = process
            result = await verify_binary("bore", timeout=0.05)

        assert result is False
        assert process.signals == ["kill"]
        assert process.returncode == -9

    @pytest.mark.asyncio
    async def test_cancelled_check_is_killed(self, make_process):
        process = make_process()

        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = process
            check = asyncio.ensure_future(verify_binary("bore", timeout=30))
            while not mock_create.await_count:
                await asyncio.sleep(0)
            check.cancel()

            with pytest.raises(asyncio.CancelledError):
                await check

        assert process.signals == ["kill"]
        assert process.returncode == -9


class TestLocateBinary:
    """Resolve then verify"""

    @pytest.mark.asyncio
    async def test_returns_verified_binary(self):
        resolver = Mock()
        resolver.resolve.return_value = "/usr/bin/bore"

        with patch("bore_tunnel.binary.verify_binary", new=AsyncMock(return_value=True)):
            assert await locate_binary(resolver) == "/usr/bin/bore"

    @pytest.mark.asyncio
    async def test_unverified_binary_is_not_found(self):
        resolver = Mock()
        resolver.resolve.return_value = "bore"

        with patch("bore_tunnel.binary.verify_binary", new=AsyncMock(return_value=False)):
            with pytest.raises(BinaryNotFoundError, match="bore binary not found"):
                await locate_binary(resolver)

    @pytest.mark.asyncio
    async def test_passes_verify_timeout(self):
        resolver = Mock()
        resolver.resolve.return_value = "bore"
        verify = AsyncMock(return_value=True)

        with patch("bore_tunnel.binary.verify_binary", new=verify):
            await locate_binary(resolver, timeout=1.5)

        verify.assert_awaited_once_with("bore", timeout=1.5)
