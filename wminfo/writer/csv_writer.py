import csv


def write_csv(csv_dir, schemas, tables, table_order):
    written = []
    for table_name in table_order:
        if table_name not in tables:
            continue
        headers = schemas[table_name]
        csv_path = csv_dir / f"{table_name}.csv"
        with csv_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(headers)
            for row in tables[table_name]:
                writer.writerow([row.get(header, "") for header in headers])
        written.append(csv_path)
    return written
