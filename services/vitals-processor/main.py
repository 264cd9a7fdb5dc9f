import json
import logging
import os
import signal
import time
from typing import Optional

from kafka import KafkaConsumer, KafkaProducer

from errors import InvalidMetric, InvalidVitals
from processor import VitalsProcessor

RAW_TOPIC = os.getenv("VITALS_RAW_TOPIC", "vitals_raw")
OUT_TOPIC = os.getenv("VITALS_PROCESSED_TOPIC", "vitals_processed")
BROKER = os.getenv("KAFKA_BROKER", "kafka:9092")
GROUP_ID = os.getenv("KAFKA_GROUP_ID", "vitals-processor")

_running = True


def _install_signal_handlers():
    def _handle(_sig, _frame):
        global _running
        _running = False

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _decode(v: bytes):
    if not v:
        return None
    try:
        return json.loads(v.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        logging.warning("Undecodable message skipped: %s", e)
        return None


def _new_consumer() -> KafkaConsumer:
    return KafkaConsumer(
        RAW_TOPIC,
        bootstrap_servers=BROKER,
        group_id=GROUP_ID,
        auto_offset_reset=os.getenv("AUTO_OFFSET_RESET", "latest"),
        enable_auto_commit=True,
        value_deserializer=_decode,
        consumer_timeout_ms=1000,
    )


def _new_producer() -> KafkaProducer:
    # Keyed by patient so every sample of a patient stays on one partition, in order.
    return KafkaProducer(
        bootstrap_servers=BROKER,
        key_serializer=lambda k: k.encode("utf-8"),
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        retries=5,
        linger_ms=50,
    )


def handle_message(processor: VitalsProcessor, producer, payload) -> Optional[dict]:
    """Process and publish one sample. A bad sample is logged and dropped."""
    try:
        enriched = processor.process(payload)
    except (InvalidVitals, InvalidMetric) as e:
        patient = payload.get("patientId") if isinstance(payload, dict) else None
        logging.warning("Dropping sample: patient=%s reason=%s", patient, e)
        return None

    producer.send(OUT_TOPIC, key=enriched["patientId"], value=enriched)

    raw = enriched["rawVitals"]
    vitals = enriched["vitals"]
    logging.info(
        "Processed vitals: patient=%s status=%s hr=%s->%s spo2=%s->%s temp=%s->%s",
        enriched["patientId"],
        enriched["status"].upper(),
        raw["heartRate"],
        vitals["heartRate"],
        raw["spo2"],
        vitals["spo2"],
        raw["temperature"],
        vitals["temperature"],
    )
    if enriched["alerts"]:
        logging.info("Alerts: patient=%s %s", enriched["patientId"], ", ".join(enriched["alerts"]))
    return enriched


def start_vitals_processor():
    _install_signal_handlers()

    logging.info("Vitals Processor started")
    logging.info("Kafka broker: %s", BROKER)
    logging.info("Consuming: %s -> Producing: %s", RAW_TOPIC, OUT_TOPIC)

    processor = VitalsProcessor()
    logging.info("Smoothing window=%d rules=%d", processor.histories.max_size, len(processor.rules))

    consumer = None
    producer = None

    try:
        while _running:
            try:
                if consumer is None:
                    consumer = _new_consumer()
                if producer is None:
                    producer = _new_producer()

                # consumer_timeout_ms ends the iteration when idle so _running is rechecked
                for msg in consumer:
                    handle_message(processor, producer, msg.value)
                    if not _running:
                        break

            except Exception as e:
                logging.exception("Vitals processor error; will recreate Kafka clients: %s", e)
                consumer = None
                producer = None
                time.sleep(2)
    finally:
        logging.info("Shutting down vitals processor")
        if consumer is not None:
            consumer.close()
        if producer is not None:
            producer.flush(2)
            producer.close()


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(message)s")
    start_vitals_processor()
