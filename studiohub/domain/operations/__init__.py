"""Operations Domain - checklist tasks created when a booking is confirmed"""
