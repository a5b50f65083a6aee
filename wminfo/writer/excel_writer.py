from openpyxl import Workbook


def write_excel(out_path, schemas, tables, table_order, about=None):
    workbook = Workbook()
    default_sheet = workbook.active
    workbook.remove(default_sheet)

    if about:
        worksheet = workbook.create_sheet(title="About")
        for label, value in about.items():
            worksheet.append([label, value])

    for table_name in table_order:
        if table_name not in tables:
            continue
        headers = schemas[table_name]
        worksheet = workbook.create_sheet(title=table_name)
        worksheet.append(headers)

        for row in tables[table_name]:
            worksheet.append([row.get(header, "") for header in headers])

    workbook.save(out_path)
