"""Tests for nginx config rendering and reload."""
from pathlib import Path

import pytest
import sh
from unittest.mock import MagicMock, call, patch

from hostprov.env import Resolver
from hostprov.nginx import (
    proxy_config_name, reload_nginx, render_template, write_nginx_default, write_proxy_config,
)
from hostprov.utils import CommandError, ConfigurationError, ProvisionError


class TestRenderTemplate:
    """Tests for template substitution."""

    def test_default_template(self):
        """Test cert and key paths are substituted."""
        content = render_template("nginx-default.conf", CERT_PATH="/c.cer", KEY_PATH="/c.key")

        assert "ssl_certificate /c.cer;" in content
        assert "ssl_certificate_key /c.key;" in content
        assert "return 444;" in content
        assert "{{" not in content

    def test_missing_template(self):
        """Test a missing template names the path."""
        with pytest.raises(ProvisionError, match="nope.conf"):
            render_template("nope.conf")

    def test_proxy_config_name(self):
        """Test dots become dashes in file names."""
        assert proxy_config_name("emby.example.com") == "emby-example-com.conf"


class TestWriteNginxDefault:
    """Tests for write-nginx-default."""

    def test_explicit_pair(self, tmp_path):
        """Test explicit cert and key paths are written into the config."""
        output = tmp_path / "conf.d" / "default" / "00-default.conf"

        write_nginx_default(Resolver(), Path("/x.cer"), Path("/x.key"), output_path=output)

        content = output.read_text()
        assert "ssl_certificate /x.cer;" in content
        assert "ssl_certificate_key /x.key;" in content

    def test_pair_from_environment(self, tmp_path):
        """Test the pair can come from overrides."""
        output = tmp_path / "default.conf"
        resolver = Resolver({"NGINX_CERT_PATH": "/e.cer", "NGINX_KEY_PATH": "/e.key"}, {})

        write_nginx_default(resolver, output_path=output)

        assert "ssl_certificate /e.cer;" in output.read_text()

    def test_derived_pair(self, tmp_path):
        """Test the pair derives from domain and cert dir name."""
        output = tmp_path / "default.conf"
        resolver = Resolver({"DOMAIN": "foo.com", "NGINX_CERT_DIR_NAME": "foo"}, {})

        write_nginx_default(resolver, output_path=output)

        content = output.read_text()
        assert "ssl_certificate /etc/ca-certificates/foo/foo.com.cer;" in content
        assert "ssl_certificate_key /etc/ca-certificates/foo/foo.com.key;" in content

    @pytest.mark.parametrize("cert,key", [(Path("/x.cer"), None), (None, Path("/x.key"))])
    @pytest.mark.parametrize("env", [{}, {"DOMAIN": "foo.com"}, {"DOMAIN": "foo.com", "CERT_DIR_NAME": "d"}])
    @patch('hostprov.prompt.prompt_value')
    def test_half_pair_fails(self, mock_prompt, env, cert, key, tmp_path):
        """Test one half of the pair is a configuration error whatever else is set."""
        output = tmp_path / "default.conf"

        with pytest.raises(ConfigurationError):
            write_nginx_default(Resolver(env, {}), cert, key, output_path=output)
        mock_prompt.assert_not_called()
        assert not output.exists()

    @patch('hostprov.nginx.write_file')
    def test_dry_run_writes_nothing(self, mock_write, tmp_path, capsys):
        """Test dry run only reports."""
        output = tmp_path / "default.conf"

        write_nginx_default(Resolver(), Path("/x.cer"), Path("/x.key"), output_path=output, dry_run=True)

        mock_write.assert_not_called()
        assert not output.exists()
        assert f"[DRY RUN] Would write nginx config to: {output}" in capsys.readouterr().out


class TestWriteProxyConfig:
    """Tests for write-proxy-config."""

    def test_full_render(self, tmp_path):
        """Test every token is substituted."""
        path = write_proxy_config(
            Resolver(),
            proxy_domain="emby.example.com",
            backend_url="https://backend.example.com:443",
            resolvers=["8.8.8.8", "8.8.4.4"],
            cert_path=Path("/c.cer"),
            key_path=Path("/c.key"),
            output_dir=tmp_path,
        )

        assert path == tmp_path / "emby-example-com.conf"
        content = path.read_text()
        assert "server_name emby.example.com;" in content
        assert "set $backend https://backend.example.com:443;" in content
        assert "resolver 8.8.8.8 8.8.4.4 valid=300s;" in content
        assert "ssl_certificate /c.cer;" in content
        assert "{{" not in content

    def test_cert_domain_from_override(self, tmp_path):
        """Test DOMAIN from --env drives the derived cert pair."""
        cert_dir = tmp_path / "certs"
        resolver = Resolver({"DOMAIN": "foo.com"}, {})

        path = write_proxy_config(
            resolver,
            proxy_domain="proxy.foo.com",
            backend_url="https://b:443",
            resolvers=["1.1.1.1"],
            cert_dir=cert_dir,
            output_dir=tmp_path / "out",
        )

        content = path.read_text()
        assert f"ssl_certificate {cert_dir}/foo.com.cer;" in content
        assert f"ssl_certificate_key {cert_dir}/foo.com.key;" in content

    @patch('hostprov.prompt.prompt_value')
    def test_cert_domain_defaults_to_proxy_domain(self, mock_prompt, tmp_path):
        """Test a blank answer for the cert domain uses the proxy domain."""
        mock_prompt.return_value = ""

        path = write_proxy_config(
            Resolver({}, {}),
            proxy_domain="proxy.foo.com",
            backend_url="https://b:443",
            resolvers=["1.1.1.1"],
            cert_dir=tmp_path,
            output_dir=tmp_path,
        )

        assert f"ssl_certificate {tmp_path}/proxy.foo.com.cer;" in path.read_text()
        mock_prompt.assert_called_once_with("Certificate domain", default="proxy.foo.com")

    @patch('hostprov.prompt.select_resolver_with_timeout')
    def test_resolver_menu(self, mock_select, tmp_path):
        """Test the resolver menu runs when nothing supplies resolvers."""
        mock_select.return_value = "223.5.5.5 223.6.6.6"

        path = write_proxy_config(
            Resolver(),
            proxy_domain="p.example.com",
            backend_url="https://b:443",
            cert_path=Path("/c.cer"),
            key_path=Path("/c.key"),
            output_dir=tmp_path,
        )

        assert "resolver 223.5.5.5 223.6.6.6 valid=300s;" in path.read_text()

    def test_half_pair_fails(self, tmp_path):
        """Test one half of the pair is a configuration error."""
        with pytest.raises(ConfigurationError):
            write_proxy_config(
                Resolver({"NGINX_KEY_PATH": "/k.key"}, {}),
                proxy_domain="p.example.com",
                backend_url="https://b:443",
                resolvers=["1.1.1.1"],
                output_dir=tmp_path,
            )

    @patch('hostprov.prompt.select_resolver_with_timeout')
    @patch('hostprov.prompt.prompt_value')
    def test_half_pair_fails_before_prompting(self, mock_prompt, mock_select, tmp_path):
        """Test a lone key path fails before asking for the proxy, backend or resolvers."""
        with pytest.raises(ConfigurationError, match="must be set together"):
            write_proxy_config(Resolver({"NGINX_KEY_PATH": "/k.key"}, {}), output_dir=tmp_path)

        mock_prompt.assert_not_called()
        mock_select.assert_not_called()
        assert list(tmp_path.iterdir()) == []

    def test_dry_run(self, tmp_path):
        """Test dry run does not create the output directory."""
        out = tmp_path / "proxy"

        write_proxy_config(
            Resolver(),
            proxy_domain="p.example.com",
            backend_url="https://b:443",
            resolvers=["1.1.1.1"],
            cert_path=Path("/c.cer"),
            key_path=Path("/c.key"),
            output_dir=out,
            dry_run=True,
        )

        assert not out.exists()


class TestReloadNginx:
    """Tests for validation and reload."""

    @patch('hostprov.nginx.sh.Command')
    def test_validate_then_reload(self, mock_command):
        """Test nginx -t runs before nginx -s reload."""
        nginx = MagicMock()
        mock_command.return_value = nginx

        reload_nginx("/usr/sbin/nginx")

        mock_command.assert_called_with("/usr/sbin/nginx")
        assert nginx.call_args_list == [call("-t", _fg=True), call("-s", "reload", _fg=True)]

    @patch('hostprov.nginx.sh.Command')
    def test_validation_failure_stops(self, mock_command):
        """Test a failed validation is fatal and skips the reload."""
        nginx = MagicMock(side_effect=sh.ErrorReturnCode_1("nginx -t", b"", b""))
        mock_command.return_value = nginx

        with pytest.raises(CommandError, match="nginx -t failed"):
            reload_nginx("nginx")
        assert nginx.call_count == 1

    @patch('hostprov.nginx.sh.Command')
    def test_missing_binary(self, mock_command):
        """Test a missing nginx binary is reported."""
        mock_command.side_effect = sh.CommandNotFound("/opt/nginx")

        with pytest.raises(CommandError, match="not found"):
            reload_nginx("/opt/nginx")

    @patch('hostprov.nginx.sh.Command')
    def test_dry_run(self, mock_command):
        """Test dry run never invokes nginx."""
        reload_nginx("nginx", dry_run=True)

        mock_command.assert_not_called()
