"""Tests for User-Agent parsing."""

from lite_analytics.user_agent import DeviceClass, parse_user_agent


class TestUserAgentParsing:
    """Test browser, OS and device-class detection."""

    def test_chrome_mac(self):
        ua = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        info = parse_user_agent(ua)
        assert info.browser == "Chrome"
        assert info.os == "macOS"
        assert info.device == DeviceClass.DESKTOP

    def test_safari_ios(self):
        ua = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        info = parse_user_agent(ua)
        assert info.browser == "Safari"
        assert info.os == "iOS"
        assert info.device == DeviceClass.MOBILE

    def test_firefox_windows(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
        info = parse_user_agent(ua)
        assert info.browser == "Firefox"
        assert info.os == "Windows"
        assert info.device == DeviceClass.DESKTOP

    def test_edge_windows(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
        info = parse_user_agent(ua)
        assert info.browser == "Edge"
        assert info.os == "Windows"

    def test_android_chrome(self):
        ua = "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.6099.43 Mobile Safari/537.36"
        info = parse_user_agent(ua)
        assert info.browser == "Chrome"
        assert info.os == "Android"
        assert info.device == DeviceClass.MOBILE

    def test_android_tablet(self):
        ua = "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        info = parse_user_agent(ua)
        assert info.os == "Android"
        assert info.device == DeviceClass.TABLET

    def test_ipad_safari(self):
        ua = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        info = parse_user_agent(ua)
        assert info.browser == "Safari"
        assert info.os == "iOS"
        assert info.device == DeviceClass.TABLET

    def test_smart_tv(self):
        ua = "Mozilla/5.0 (SMART-TV; Linux; Tizen 6.0) AppleWebKit/537.36 (KHTML, like Gecko) SamsungBrowser/4.0 Chrome/76.0.3809.146 TV Safari/537.36"
        info = parse_user_agent(ua)
        assert info.browser == "Samsung Internet"
        assert info.device == DeviceClass.SMARTTV

    def test_console(self):
        ua = "Mozilla/5.0 (PlayStation; PlayStation 5/2.26) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/13.0 Safari/605.1.15"
        assert parse_user_agent(ua).device == DeviceClass.CONSOLE

    def test_empty_ua(self):
        info = parse_user_agent("")
        assert info.browser == "Unknown"
        assert info.os == "Unknown"
        assert info.device == DeviceClass.DESKTOP

    def test_garbage_ua(self):
        info = parse_user_agent("unknown")
        assert info.browser == "Unknown"
        assert info.os == "Unknown"
