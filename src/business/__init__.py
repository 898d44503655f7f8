"""
Business Layer - 业务模块层

推送服务的业务逻辑层，包含：
- registry: 渠道 / 推送目标 / 接收者管理
- notification: 渠道适配器与推送调度
- history: 消息历史
- binding: 用户绑定
- config: 配置管理
"""
