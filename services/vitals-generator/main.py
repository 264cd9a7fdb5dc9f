import json
import logging
import os
import time

from kafka import KafkaProducer

from simulator import VitalsSimulator

BROKER = os.getenv("KAFKA_BROKER", "kafka:9092")
TOPIC = os.getenv("VITALS_RAW_TOPIC", "vitals_raw")
INTERVAL_SEC = float(os.getenv("VITALS_INTERVAL_SEC", "1"))

PATIENT_ID = os.getenv("PATIENT_ID", "patient1")
PATIENT_NAME = os.getenv("PATIENT_NAME", "John Doe")

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(message)s")


def _new_producer() -> KafkaProducer:
    return KafkaProducer(
        bootstrap_servers=BROKER,
        key_serializer=lambda k: k.encode("utf-8"),
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        retries=5,
        linger_ms=50,
    )


if __name__ == "__main__":
    logging.info("Vitals generator started")
    logging.info("Kafka broker: %s", BROKER)
    logging.info("Producing to topic: %s", TOPIC)
    logging.info("patient=%s interval=%ss", PATIENT_ID, INTERVAL_SEC)

    sim = VitalsSimulator(PATIENT_ID, PATIENT_NAME)
    producer = None

    while True:
        reading = sim.next_reading()

        try:
            if producer is None:
                producer = _new_producer()
            producer.send(TOPIC, key=PATIENT_ID, value=reading)
            v = reading["vitals"]
            logging.info(
                "Sent vitals: patient=%s hr=%d spo2=%d temp=%.1f scenario=%s",
                PATIENT_ID,
                v["heartRate"],
                v["spo2"],
                v["temperature"],
                reading["scenario"],
            )
        except Exception as e:
            logging.exception("Kafka produce failed; will retry: %s", e)
            producer = None
            time.sleep(2)
            continue

        time.sleep(INTERVAL_SEC)
