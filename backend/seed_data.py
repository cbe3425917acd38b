"""Seed database with demo data."""
from decimal import Decimal

from showroom.auth import get_password_hash
from showroom.database import Base, SessionLocal, engine
from showroom.models import Customer, SparePart, SparePartCategory, Supplier, User, Vehicle, VehicleBrand


def seed():
    """Seed database with demo data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if db.query(User).first():
            print("Database already seeded, skipping")
            return

        # Create users
        users_data = [
            {'username': 'admin', 'password': 'admin123', 'full_name': 'Showroom Admin', 'role': 'admin'},
            {'username': 'kasir', 'password': 'kasir123', 'full_name': 'Front Desk Cashier', 'role': 'cashier'},
            {'username': 'budi', 'password': 'budi123', 'full_name': 'Budi Santoso', 'role': 'mechanic'},
            {'username': 'agus', 'password': 'agus123', 'full_name': 'Agus Pratama', 'role': 'mechanic'},
        ]

        users = []
        for user_data in users_data:
            password = user_data.pop('password')
            user = User(password_hash=get_password_hash(password), is_active=True, **user_data)
            db.add(user)
            users.append(user)
        db.flush()

        brands = {}
        for name in ("Honda", "Yamaha", "Suzuki", "Kawasaki"):
            brand = VehicleBrand(name=name)
            db.add(brand)
            brands[name] = brand
        db.flush()

        db.add(Supplier(name="PT Motor Jaya", contact_person="Rudi", phone="0211234567", is_active=True))
        db.add(Customer(name="Siti Rahma", phone="081234567890", id_card_number="3174000000000001"))

        vehicles_data = [
            ("VH-0001", "Honda", "Vario 125", 2019, Decimal("12000000")),
            ("VH-0002", "Yamaha", "NMAX 155", 2020, Decimal("18500000")),
            ("VH-0003", "Suzuki", "Satria F150", 2018, Decimal("11000000")),
        ]
        for code, brand_name, model, year, price in vehicles_data:
            db.add(Vehicle(
                code=code,
                brand_id=brands[brand_name].id,
                model=model,
                year=year,
                purchase_price=price,
                repair_cost=Decimal("0"),
                hpp_price=price,
                status="available",
                created_by_id=users[0].id,
            ))

        parts_data = [
            ("SP-OIL-01", "Engine oil 1L", "oil", Decimal("45000"), Decimal("55000"), 40, 10),
            ("SP-BRK-01", "Brake pad set", "brake", Decimal("60000"), Decimal("85000"), 12, 5),
            ("SP-SPK-01", "Spark plug", "engine", Decimal("18000"), Decimal("25000"), 3, 5),
            ("SP-TYR-01", "Rear tyre 90/90-14", "tyre", Decimal("210000"), Decimal("260000"), 6, 2),
        ]
        categories_data = [
            ("oil", "Engine and gear oils"),
            ("brake", "Pads, shoes and fluid"),
            ("engine", "Ignition and engine internals"),
            ("tyre", "Tyres and tubes"),
        ]
        for name, description in categories_data:
            db.add(SparePartCategory(name=name, description=description, is_active=True))

        for code, name, category, purchase, selling, stock, minimum in parts_data:
            db.add(SparePart(
                code=code,
                name=name,
                category=category,
                purchase_price=purchase,
                selling_price=selling,
                stock_quantity=stock,
                minimum_stock=minimum,
                is_active=True,
            ))

        db.commit()
        print("✅ Database seeded successfully!")
        print("\nLogin credentials:")
        print("  admin / admin123 (Admin)")
        print("  kasir / kasir123 (Cashier)")
        print("  budi / budi123 (Mechanic)")
        print("  agus / agus123 (Mechanic)")

    except Exception as e:
        print(f"❌ Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
