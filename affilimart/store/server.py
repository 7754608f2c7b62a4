#!/usr/bin/env python3
"""
JSON document store for Affilimart.

Collections of JSON documents kept in a single file and served over HTTP.
Documents are matched by their ``id`` field. Some collections carry unique
secondary keys; writes that would duplicate one are refused with 409.
"""

import json
import logging
import os
import threading

import click
from flask import Flask, jsonify, request
from flask_cors import CORS

from affilimart import config

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "admins", "categories", "templates", "services", "bookings", "leads")

UNIQUE_KEYS = {
    "users": ("email", "phone"),
    "admins": ("email", "phone"),
    "bookings": ("booking_id",),
    "leads": ("lead_id",),
    "categories": ("name",),
}


def empty_db():
    return {name: [] for name in COLLECTIONS}


def _lookup(item, path):
    """Get a possibly dotted path such as ``admin_chain.dsa_id`` from a document."""
    value = item
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None, False
        value = value[part]
    return value, True


def _matches(value, expected):
    if isinstance(value, bool):
        return str(value).lower() == expected.lower()
    if value is None:
        return expected in ("", "null")
    return str(value) == expected


def _find_duplicate(items, collection, document):
    for key in UNIQUE_KEYS.get(collection, ()):
        value = document.get(key)
        if value is None:
            continue
        for item in items:
            if item.get(key) == value and str(item.get("id")) != str(document.get("id")):
                return key
    return None


def create_app(db_file=None):
    """
    Create the store application.

    Args:
        db_file: Path of the JSON database file, created if missing

    Returns:
        Flask: The application
    """
    db_file = db_file or config.STORE_DB_FILE
    lock = threading.RLock()

    app = Flask(__name__)
    CORS(app)

    directory = os.path.dirname(db_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if not os.path.exists(db_file):
        with open(db_file, 'w') as f:
            json.dump(empty_db(), f, indent=2)

    def read_db():
        """Read the database from the JSON file."""
        with open(db_file, 'r') as f:
            return json.load(f)

    def write_db(data):
        """Write data to the JSON file."""
        tmp_file = f"{db_file}.tmp"
        with open(tmp_file, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_file, db_file)

    def not_found(message):
        return jsonify({"error": message}), 404

    @app.route('/')
    def get_root():
        """Get the entire database."""
        with lock:
            return jsonify(read_db())

    @app.route('/<collection>', methods=['GET', 'POST'])
    def manage_collection(collection):
        """Get all items or add a new item to a collection."""
        with lock:
            db = read_db()

            if request.method == 'GET':
                if collection not in db:
                    return not_found(f"Collection '{collection}' not found")
                return jsonify(db[collection])

            new_item = request.get_json(silent=True)
            if not isinstance(new_item, dict) or not new_item.get("id"):
                return jsonify({"error": "Document must be a JSON object with an 'id'"}), 400

            items = db.setdefault(collection, [])
            if any(str(item.get("id")) == str(new_item["id"]) for item in items):
                return jsonify({"error": f"Item with ID '{new_item['id']}' already exists"}), 409
            duplicate = _find_duplicate(items, collection, new_item)
            if duplicate:
                return jsonify({"error": f"Duplicate {duplicate} in '{collection}'"}), 409

            items.append(new_item)
            write_db(db)
            return jsonify(new_item), 201

    @app.route('/<collection>/query', methods=['GET'])
    def query_collection(collection):
        """Query items in a collection; keys may be dotted paths into nested documents."""
        with lock:
            db = read_db()
        if collection not in db:
            return not_found(f"Collection '{collection}' not found")

        filtered_items = []
        for item in db[collection]:
            for key, expected in request.args.items():
                value, present = _lookup(item, key)
                if not present or not _matches(value, expected):
                    break
            else:
                filtered_items.append(item)

        return jsonify(filtered_items)

    @app.route('/<collection>/<item_id>', methods=['GET', 'PUT', 'DELETE'])
    def manage_item(collection, item_id):
        """Get, update or delete a specific item."""
        with lock:
            db = read_db()
            if collection not in db:
                return not_found(f"Collection '{collection}' not found")

            items = db[collection]
            item_index = next(
                (i for i, item in enumerate(items) if str(item.get('id')) == str(item_id)), None
            )
            if item_index is None:
                return not_found(f"Item with ID '{item_id}' not found in '{collection}'")

            if request.method == 'GET':
                return jsonify(items[item_index])

            if request.method == 'PUT':
                updated_item = request.get_json(silent=True)
                if not isinstance(updated_item, dict):
                    return jsonify({"error": "Document must be a JSON object"}), 400
                updated_item["id"] = items[item_index]["id"]
                duplicate = _find_duplicate(items, collection, updated_item)
                if duplicate:
                    return jsonify({"error": f"Duplicate {duplicate} in '{collection}'"}), 409
                items[item_index] = updated_item
                write_db(db)
                return jsonify(updated_item)

            deleted_item = items.pop(item_index)
            write_db(db)
            return jsonify(deleted_item)

    @app.route('/<collection>/<item_id>/increment', methods=['POST'])
    def increment_field(collection, item_id):
        """Atomically add ``amount`` to a numeric, possibly dotted, ``field``."""
        body = request.get_json(silent=True) or {}
        field_path = body.get("field")
        amount = body.get("amount", 1)
        if not field_path or isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return jsonify({"error": "Increment needs a 'field' and a numeric 'amount'"}), 400

        with lock:
            db = read_db()
            if collection not in db:
                return not_found(f"Collection '{collection}' not found")
            item = next((i for i in db[collection] if str(i.get('id')) == str(item_id)), None)
            if item is None:
                return not_found(f"Item with ID '{item_id}' not found in '{collection}'")

            *parents, leaf = field_path.split(".")
            target = item
            for part in parents:
                target = target.setdefault(part, {})
                if not isinstance(target, dict):
                    return jsonify({"error": f"Field '{field_path}' is not numeric"}), 400
            current = target.get(leaf) or 0
            if isinstance(current, bool) or not isinstance(current, (int, float)):
                return jsonify({"error": f"Field '{field_path}' is not numeric"}), 400

            value = current + amount
            target[leaf] = round(value, 2) if isinstance(value, float) else value
            write_db(db)

        logger.debug(f"Incremented {collection}/{item_id} {field_path} by {amount}")
        return jsonify(item)

    return app


@click.command()
@click.option('--db', default=config.STORE_DB_FILE, help='Path to the JSON database file')
@click.option('--host', default='0.0.0.0', help='Interface to bind')
@click.option('--port', default=3000, help='Port to run the server on')
@click.option('--debug', is_flag=True, help='Run Flask in debug mode')
def main(db, host, port, debug):
    """Run the Affilimart JSON document store."""
    config.setup_logging()
    logger.info(f"Serving {db} on {host}:{port}")
    create_app(db).run(debug=debug, host=host, port=port)


if __name__ == '__main__':
    main()
