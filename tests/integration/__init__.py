"""
集成测试（integration tests）

说明：
- 该目录下的测试使用本地临时 HTTP server 模拟聊天群 webhook，不依赖外网。
- 请求经过真实的 urllib 网络栈，验证 payload 的实际编码与投递失败的处理。
"""
