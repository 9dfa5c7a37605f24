# src/snagent/config/const.py
from __future__ import annotations

# значения по умолчанию (меняются разработчиками в коде/сборке)

# how often the register message is sent (kind of heart-beat), seconds
HB_INTERVAL_DEFAULT_S: float = 2.0

# fixed pause between broker connect attempts, no backoff growth
CONNECT_RETRY_INTERVAL_S: float = 0.5

# poll interval of MessageBus.wait_for_ready()
READY_POLL_INTERVAL_S: float = 0.5

# how long lifecycle.stop() lets deregistration run
SHUTDOWN_GRACE_DEFAULT_S: float = 1.0

REGISTER_CHANNEL = "register"
DEREGISTER_CHANNEL = "deregister"

ENV_NODE_NAME = "SNAGENT_NODE_NAME"
ENV_MBUS_ENDPOINT = "SNAGENT_MBUS_ENDPOINT"
ENV_GRPC_ENDPOINT = "SNAGENT_GRPC_ENDPOINT"
ENV_HB_INTERVAL = "SNAGENT_HB_INTERVAL"
ENV_SHUTDOWN_GRACE = "SNAGENT_SHUTDOWN_GRACE"
ENV_LOG_LEVEL = "SNAGENT_LOG_LEVEL"
ENV_LOG_FILE = "SNAGENT_LOG_FILE"
