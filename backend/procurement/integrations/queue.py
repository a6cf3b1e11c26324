import json
from typing import Any, Dict, Optional

from kafka import KafkaProducer


class KafkaEventBus:
    def __init__(
        self,
        bootstrap_servers: str = "localhost:9092",
        producer: Optional[Any] = None,
    ) -> None:
        self.producer = producer or KafkaProducer(bootstrap_servers=bootstrap_servers)

    def publish(self, topic: str, event: Dict[str, Any]) -> None:
        payload = json.dumps(event, default=str).encode("utf-8")
        self.producer.send(topic, payload)
